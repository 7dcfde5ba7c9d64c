"""Create the default training sections when none exist.

Usage:
    cd api && python -m scripts.seed_sections
"""

import asyncio

import structlog

from scripts.cluster import cassandra_session
from securelearn.config import get_settings
from securelearn.training.schemas import CreateSectionRequest
from securelearn.training.service import ModuleService, SectionService


logger = structlog.get_logger(__name__)


DEFAULT_SECTIONS = [
    CreateSectionRequest(
        title="Password & Authentication",
        description=(
            "Learn about strong passwords, two-factor authentication, "
            "and secure login practices."
        ),
        order=1,
    ),
    CreateSectionRequest(
        title="Device Security",
        description="Protect your devices with proper security measures and best practices.",
        order=2,
    ),
    CreateSectionRequest(
        title="Email Security",
        description="Identify phishing attempts and secure your email communications.",
        order=3,
    ),
    CreateSectionRequest(
        title="Malware Protection",
        description="Understand malware threats and how to protect against them.",
        order=4,
    ),
    CreateSectionRequest(
        title="Data Privacy",
        description="Learn about data protection, privacy laws, and secure data handling.",
        order=5,
    ),
    CreateSectionRequest(
        title="Incident Response",
        description="Know what to do when security incidents occur.",
        order=6,
    ),
]


async def seed_sections(section_service: SectionService) -> int:
    """Insert the defaults into an empty catalogue.

    Returns:
        Number of sections created (0 when sections already exist)
    """
    existing = await section_service.list_sections()
    if existing:
        logger.info("seed_sections_skipped", existing=len(existing))
        return 0

    for data in DEFAULT_SECTIONS:
        section = await section_service.create_section(data)
        logger.info("seed_section_created", section_id=str(section.id), title=section.title)
    return len(DEFAULT_SECTIONS)


async def run() -> None:
    settings = get_settings()
    keyspace = settings.cassandra_keyspace

    with cassandra_session(settings) as session:
        section_service = SectionService(
            session=session,
            keyspace=keyspace,
            module_service=ModuleService(session=session, keyspace=keyspace),
        )
        created = await seed_sections(section_service)
        logger.info("seed_sections_completed", created=created)


if __name__ == "__main__":
    asyncio.run(run())
