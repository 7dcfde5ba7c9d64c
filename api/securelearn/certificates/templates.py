"""Certificate of completion template.

Printable, self-contained HTML. Every interpolated value is escaped
before it reaches the template.
"""

import html
import re
from datetime import datetime


DATE_FORMAT = "%B %d, %Y"
FALLBACK_RECIPIENT = "Certificate Recipient"
PORTAL_NAME = "SecureLearn Information Security Training Portal"

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


CERTIFICATE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Certificate of Completion</title>
  <style>
    body {{ font-family: 'Times New Roman', serif; margin: 0; padding: 40px; background: #f5f5f5; }}
    .certificate {{ background: white; padding: 60px; margin: 0 auto; max-width: 800px; box-shadow: 0 4px 8px rgba(0,0,0,0.1); }}
    .header {{ text-align: center; border-bottom: 3px solid #2563eb; padding-bottom: 30px; margin-bottom: 40px; }}
    .title {{ font-size: 36px; font-weight: bold; color: #2563eb; margin-bottom: 10px; }}
    .subtitle {{ font-size: 18px; color: #666; }}
    .content {{ text-align: center; margin: 40px 0; }}
    .recipient {{ font-size: 24px; margin: 20px 0; }}
    .name {{ font-size: 32px; font-weight: bold; color: #1f2937; border-bottom: 2px solid #e5e7eb; padding-bottom: 10px; display: inline-block; }}
    .completion-text {{ font-size: 18px; margin: 30px 0; line-height: 1.6; }}
    .course-name {{ font-size: 22px; font-weight: bold; color: #2563eb; margin: 20px 0; }}
    .details {{ display: flex; justify-content: space-between; margin: 40px 0; }}
    .detail-item {{ text-align: center; }}
    .detail-label {{ font-size: 14px; color: #666; margin-bottom: 5px; }}
    .detail-value {{ font-size: 16px; font-weight: bold; }}
    .footer {{ text-align: center; margin-top: 50px; padding-top: 30px; border-top: 1px solid #e5e7eb; }}
    .signature {{ font-size: 14px; color: #666; }}
    @media print {{
      body {{ background: white; }}
      .certificate {{ box-shadow: none; }}
    }}
  </style>
</head>
<body>
  <div class="certificate">
    <div class="header">
      <div class="title">Certificate of Completion</div>
      <div class="subtitle">Information Security Training</div>
    </div>
    <div class="content">
      <div class="recipient">This is to certify that</div>
      <div class="name">{recipient}</div>
      <div class="completion-text">
        has successfully completed the information security training course
      </div>
      <div class="course-name">{section_title}</div>
      <div class="details">
        <div class="detail-item">
          <div class="detail-label">Score</div>
          <div class="detail-value">{score}%</div>
        </div>
        <div class="detail-item">
          <div class="detail-label">Questions</div>
          <div class="detail-value">{correct_answers}/{total_questions}</div>
        </div>
        <div class="detail-item">
          <div class="detail-label">Date Completed</div>
          <div class="detail-value">{date_completed}</div>
        </div>
      </div>
    </div>
    <div class="footer">
      <div class="signature">
        {portal_name}<br>
        Certificate ID: {certificate_id}
      </div>
    </div>
  </div>
</body>
</html>
"""


def recipient_name(
    first_name: str | None,
    last_name: str | None,
    email: str | None,
) -> str:
    """Name printed on the certificate.

    Examples:
        >>> recipient_name("Ada", "Lovelace", "ada@example.com")
        'Ada Lovelace'
        >>> recipient_name(None, None, "ada@example.com")
        'ada@example.com'
        >>> recipient_name(None, None, None)
        'Certificate Recipient'
    """
    if first_name or last_name:
        name = f"{first_name or ''} {last_name or ''}".strip()
        if name:
            return name
    return email or FALLBACK_RECIPIENT


def certificate_filename(section_title: str) -> str:
    """Download filename: every non-alphanumeric character becomes ``-``."""
    return f"certificate-{_NON_ALNUM.sub('-', section_title)}.html"


def render_certificate(
    recipient: str,
    section_title: str,
    score: int,
    correct_answers: int,
    total_questions: int,
    date_taken: datetime,
    certificate_id: str,
) -> str:
    """Render certificate HTML.

    Args:
        recipient: Name printed on the certificate
        section_title: Completed section
        score: Percentage score
        correct_answers: Correctly answered questions
        total_questions: Questions in the assessment
        date_taken: When the assessment was submitted
        certificate_id: ``<result_id>-<section_id>``

    Returns:
        Complete HTML document
    """
    return CERTIFICATE_TEMPLATE.format(
        recipient=html.escape(recipient),
        section_title=html.escape(section_title),
        score=int(score),
        correct_answers=int(correct_answers),
        total_questions=int(total_questions),
        date_completed=html.escape(date_taken.strftime(DATE_FORMAT)),
        portal_name=PORTAL_NAME,
        certificate_id=html.escape(certificate_id),
    )
