"""Section assessment service layer.

Business logic for:
- Questions: CRUD with correct answers normalized to option indexes
- Attempts: server-stamped start time, consumed exactly once on submit
- Results: grading, pass tracking, certificate flag and admin resets

Redis, when configured, adds a per-(user, section) submission lock and an
hourly submission limit. Without Redis the attempt row alone keeps a
submission from being graded twice.
"""

from datetime import timedelta
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from securelearn.assessments.models import (
    AssessmentAttempt,
    AssessmentQuestion,
    AssessmentResult,
)
from securelearn.assessments.schemas import CreateQuestionRequest, UpdateQuestionRequest
from securelearn.assessments.scoring import (
    AnswerNormalizationError,
    normalize_correct_answer,
    score_submission,
)
from securelearn.config import Settings, get_settings
from securelearn.core.batch import Mutation, execute_logged_batch
from securelearn.core.redis import submission_lock_key, submission_rate_key
from securelearn.core.rows import sort_by_order, utcnow


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis

logger = structlog.get_logger(__name__)

# Attempt rows outlive the deadline so late submissions can be told apart
# from submissions that were never started.
ATTEMPT_TTL_MARGIN_SECONDS = 300


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class AssessmentError(Exception):
    """Base assessment error."""

    def __init__(self, message: str, code: str = "assessment_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class AssessmentSectionNotFoundError(AssessmentError):
    def __init__(self, message: str = "Section not found"):
        super().__init__(message, "section_not_found")


class QuestionNotFoundError(AssessmentError):
    def __init__(self, message: str = "Question not found"):
        super().__init__(message, "question_not_found")


class ResultNotFoundError(AssessmentError):
    def __init__(self, message: str = "Assessment result not found"):
        super().__init__(message, "result_not_found")


class NoQuestionsError(AssessmentError):
    def __init__(self, message: str = "This section has no assessment questions"):
        super().__init__(message, "no_questions")


class InvalidAnswerError(AssessmentError):
    def __init__(self, message: str = "Correct answer does not match any option"):
        super().__init__(message, "invalid_answer")


class AlreadyPassedError(AssessmentError):
    def __init__(self, message: str = "Assessment already passed"):
        super().__init__(message, "already_passed")


class AttemptNotStartedError(AssessmentError):
    def __init__(self, message: str = "No open attempt for this assessment"):
        super().__init__(message, "attempt_not_started")


class AttemptExpiredError(AssessmentError):
    def __init__(self, message: str = "Time limit for this attempt has passed"):
        super().__init__(message, "attempt_expired")


class SubmissionInProgressError(AssessmentError):
    def __init__(self, message: str = "A submission for this assessment is in progress"):
        super().__init__(message, "submission_in_progress")


class RateLimitExceededError(AssessmentError):
    def __init__(self, message: str = "Too many assessment submissions, try again later"):
        super().__init__(message, "rate_limited")


# ==============================================================================
# Assessment Service
# ==============================================================================


class AssessmentService:
    """Service for assessment questions, attempts and results."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        redis: "Redis | None" = None,
        settings: Settings | None = None,
    ):
        """Initialize with Cassandra session and optional Redis."""
        self.session = session
        self.keyspace = keyspace
        self.redis = redis

        settings = settings or get_settings()
        self.time_limit_seconds = settings.assessment_time_limit_seconds
        self.grace_seconds = settings.assessment_grace_seconds
        self.submit_lock_seconds = settings.assessment_submit_lock_seconds
        self.submits_per_hour = settings.assessment_submits_per_hour

        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        ks = self.keyspace

        # Questions
        self._get_question = self.session.prepare(
            f"SELECT * FROM {ks}.assessment_questions WHERE id = ?"
        )
        self._list_section_questions = self.session.prepare(
            f"SELECT * FROM {ks}.assessment_questions WHERE section_id = ?"
        )
        self._list_all_questions = self.session.prepare(
            f"SELECT * FROM {ks}.assessment_questions"
        )
        self._insert_question = self.session.prepare(f"""
            INSERT INTO {ks}.assessment_questions
            (id, section_id, question, options, correct_answer, correct_answer_code,
             sort_order, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_question = self.session.prepare(
            f"DELETE FROM {ks}.assessment_questions WHERE id = ?"
        )
        self._set_normalized_answer = self.session.prepare(f"""
            UPDATE {ks}.assessment_questions
            SET correct_answer = ?, correct_answer_code = null
            WHERE id = ?
        """)
        self._section_exists = self.session.prepare(
            f"SELECT id FROM {ks}.training_sections WHERE id = ?"
        )

        # Attempts
        self._get_attempt = self.session.prepare(f"""
            SELECT * FROM {ks}.assessment_attempts
            WHERE user_id = ? AND section_id = ?
        """)
        self._insert_attempt = self.session.prepare(f"""
            INSERT INTO {ks}.assessment_attempts
            (user_id, section_id, started_at, expires_at)
            VALUES (?, ?, ?, ?)
            USING TTL ?
        """)
        self._consume_attempt_stmt = self.session.prepare(f"""
            DELETE FROM {ks}.assessment_attempts
            WHERE user_id = ? AND section_id = ?
            IF started_at = ?
        """)
        self._delete_attempt = self.session.prepare(f"""
            DELETE FROM {ks}.assessment_attempts
            WHERE user_id = ? AND section_id = ?
        """)
        self._delete_user_attempts = self.session.prepare(
            f"DELETE FROM {ks}.assessment_attempts WHERE user_id = ?"
        )

        # Results
        self._get_result = self.session.prepare(
            f"SELECT * FROM {ks}.assessment_results WHERE id = ?"
        )
        self._list_user_results = self.session.prepare(
            f"SELECT * FROM {ks}.assessment_results WHERE user_id = ?"
        )
        self._list_all_results = self.session.prepare(
            f"SELECT * FROM {ks}.assessment_results"
        )
        self._insert_result = self.session.prepare(f"""
            INSERT INTO {ks}.assessment_results
            (id, user_id, section_id, score, total_questions, correct_answers,
             answers, passed, date_taken, certificate_generated)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_result = self.session.prepare(
            f"DELETE FROM {ks}.assessment_results WHERE id = ?"
        )
        self._set_certificate_generated = self.session.prepare(f"""
            UPDATE {ks}.assessment_results
            SET certificate_generated = true
            WHERE id = ?
        """)

    # ==========================================================================
    # Questions
    # ==========================================================================

    async def _ensure_section(self, section_id: UUID) -> None:
        result = await self.session.aexecute(self._section_exists, [section_id])
        if not result.one():
            raise AssessmentSectionNotFoundError

    async def get_question(self, question_id: UUID) -> AssessmentQuestion:
        """Get question by ID.

        Raises:
            QuestionNotFoundError: If question doesn't exist
        """
        result = await self.session.aexecute(self._get_question, [question_id])
        row = result.one()
        if not row:
            raise QuestionNotFoundError
        return AssessmentQuestion.from_row(row)

    async def list_questions(self, section_id: UUID) -> list[AssessmentQuestion]:
        """Questions of a section in display order."""
        rows = await self.session.aexecute(self._list_section_questions, [section_id])
        questions = [AssessmentQuestion.from_row(row) for row in rows]
        return sort_by_order(questions)

    async def list_all_questions(self) -> list[AssessmentQuestion]:
        rows = await self.session.aexecute(self._list_all_questions)
        return sort_by_order([AssessmentQuestion.from_row(row) for row in rows])

    async def list_questions_for_taker(self, section_id: UUID) -> list[AssessmentQuestion]:
        """Questions to present to an employee.

        Raises:
            AssessmentSectionNotFoundError: If the section doesn't exist
        """
        await self._ensure_section(section_id)
        return await self.list_questions(section_id)

    async def _save_question(self, question: AssessmentQuestion) -> None:
        await self.session.aexecute(
            self._insert_question,
            [
                question.id,
                question.section_id,
                question.question,
                question.options,
                question.correct_answer,
                question.correct_answer_code,
                question.order,
                question.created_at,
                question.updated_at,
            ],
        )

    async def create_question(self, data: CreateQuestionRequest) -> AssessmentQuestion:
        """Create a question; the correct answer is stored as an index.

        Raises:
            AssessmentSectionNotFoundError: If the section doesn't exist
            InvalidAnswerError: If the correct answer matches no option
        """
        await self._ensure_section(data.section_id)

        try:
            correct_answer = normalize_correct_answer(data.correct_answer, data.options)
        except AnswerNormalizationError as e:
            raise InvalidAnswerError(str(e)) from e

        now = utcnow()
        question = AssessmentQuestion(
            section_id=data.section_id,
            question=data.question,
            options=data.options,
            correct_answer=correct_answer,
            order=data.order,
            created_at=now,
            updated_at=now,
        )
        await self._save_question(question)

        logger.info(
            "assessment_question_created",
            question_id=str(question.id),
            section_id=str(question.section_id),
        )
        return question

    async def update_question(
        self, question_id: UUID, data: UpdateQuestionRequest
    ) -> AssessmentQuestion:
        """Partially update a question.

        When only the options change, the stored answer index must still
        point at one of them.

        Raises:
            QuestionNotFoundError: If question doesn't exist
            InvalidAnswerError: If the correct answer matches no option
        """
        question = await self.get_question(question_id)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("question") is not None:
            question.question = changes["question"]
        if changes.get("options") is not None:
            question.options = changes["options"]
        if changes.get("order") is not None:
            question.order = changes["order"]

        marker = changes.get("correct_answer")
        if marker is None:
            marker = question.correct_answer
        if marker is None:
            marker = question.correct_answer_code
        if marker is None:
            raise InvalidAnswerError("Question has no correct answer")

        try:
            question.correct_answer = normalize_correct_answer(marker, question.options)
        except AnswerNormalizationError as e:
            raise InvalidAnswerError(str(e)) from e
        question.correct_answer_code = None
        question.updated_at = utcnow()

        await self._save_question(question)
        logger.info("assessment_question_updated", question_id=str(question_id))
        return question

    async def delete_question(self, question_id: UUID) -> None:
        """Delete a question.

        Raises:
            QuestionNotFoundError: If question doesn't exist
        """
        await self.get_question(question_id)
        await self.session.aexecute(self._delete_question, [question_id])
        logger.info("assessment_question_deleted", question_id=str(question_id))

    async def normalize_legacy_answers(self) -> tuple[int, int]:
        """Convert legacy answer codes to option indexes.

        Returns:
            Tuple of (converted_count, failed_count)
        """
        converted = 0
        failed = 0
        for question in await self.list_all_questions():
            if not question.needs_migration:
                continue
            try:
                index = normalize_correct_answer(
                    question.correct_answer_code, question.options
                )
            except AnswerNormalizationError as e:
                logger.warning(
                    "legacy_answer_unresolved",
                    question_id=str(question.id),
                    error=str(e),
                )
                failed += 1
                continue
            await self.session.aexecute(self._set_normalized_answer, [index, question.id])
            converted += 1
        return converted, failed

    # ==========================================================================
    # Rate limiting & locking
    # ==========================================================================

    async def check_rate_limit(self, user_id: UUID) -> bool:
        """Check the hourly submission limit.

        Returns True if within limit, raises RateLimitExceededError otherwise.
        """
        if not self.redis:
            return True

        count = await self.redis.get(submission_rate_key(str(user_id)))
        if count and int(count) >= self.submits_per_hour:
            raise RateLimitExceededError
        return True

    async def increment_rate_limit(self, user_id: UUID) -> None:
        """Increment the hourly submission counter."""
        if not self.redis:
            return

        key = submission_rate_key(str(user_id))
        pipe = self.redis.pipeline()
        pipe.incr(key)
        pipe.expire(key, 3600)
        await pipe.execute()

    async def _acquire_submission_lock(self, user_id: UUID, section_id: UUID) -> bool:
        """Take the submission lock; False when Redis is not configured.

        Raises:
            SubmissionInProgressError: If another submission holds the lock
        """
        if not self.redis:
            return False

        acquired = await self.redis.set(
            submission_lock_key(str(user_id), str(section_id)),
            "1",
            nx=True,
            ex=self.submit_lock_seconds,
        )
        if not acquired:
            raise SubmissionInProgressError
        return True

    async def _release_submission_lock(self, user_id: UUID, section_id: UUID) -> None:
        if self.redis:
            await self.redis.delete(submission_lock_key(str(user_id), str(section_id)))

    # ==========================================================================
    # Attempts
    # ==========================================================================

    async def get_attempt(self, user_id: UUID, section_id: UUID) -> AssessmentAttempt | None:
        result = await self.session.aexecute(self._get_attempt, [user_id, section_id])
        row = result.one()
        return AssessmentAttempt.from_row(row) if row else None

    async def start_attempt(
        self, user_id: UUID, section_id: UUID
    ) -> tuple[AssessmentAttempt, list[AssessmentQuestion]]:
        """Open (or restart) an attempt and return the questions to answer.

        Raises:
            AssessmentSectionNotFoundError: If the section doesn't exist
            NoQuestionsError: If the section has no questions
            AlreadyPassedError: If the user already passed this section
        """
        questions = await self.list_questions_for_taker(section_id)
        if not questions:
            raise NoQuestionsError
        if await self.has_passed(user_id, section_id):
            raise AlreadyPassedError

        started_at = utcnow()
        attempt = AssessmentAttempt(
            user_id=user_id,
            section_id=section_id,
            started_at=started_at,
            expires_at=started_at + timedelta(seconds=self.time_limit_seconds),
        )
        ttl = self.time_limit_seconds + self.grace_seconds + ATTEMPT_TTL_MARGIN_SECONDS
        await self.session.aexecute(
            self._insert_attempt,
            [user_id, section_id, attempt.started_at, attempt.expires_at, ttl],
        )

        logger.info(
            "assessment_started",
            user_id=str(user_id),
            section_id=str(section_id),
            expires_at=attempt.expires_at.isoformat(),
        )
        return attempt, questions

    async def _consume_attempt(self, attempt: AssessmentAttempt) -> bool:
        """Delete the attempt if it is still the one that was read."""
        result = await self.session.aexecute(
            self._consume_attempt_stmt,
            [attempt.user_id, attempt.section_id, attempt.started_at],
        )
        return bool(result.was_applied)

    # ==========================================================================
    # Submissions
    # ==========================================================================

    async def submit_assessment(
        self,
        user_id: UUID,
        section_id: UUID,
        answers: dict[UUID, int],
    ) -> AssessmentResult:
        """Grade a submission against the open attempt.

        Raises:
            RateLimitExceededError: Hourly submission limit reached
            SubmissionInProgressError: Concurrent submission for the section
            AlreadyPassedError: Section already passed
            NoQuestionsError: Section has no questions
            AttemptNotStartedError: No open attempt, or it was already used
            AttemptExpiredError: Submitted after the time limit and grace period
        """
        await self.check_rate_limit(user_id)
        locked = await self._acquire_submission_lock(user_id, section_id)
        try:
            return await self._grade_submission(user_id, section_id, answers)
        finally:
            if locked:
                await self._release_submission_lock(user_id, section_id)

    async def _grade_submission(
        self,
        user_id: UUID,
        section_id: UUID,
        answers: dict[UUID, int],
    ) -> AssessmentResult:
        if await self.has_passed(user_id, section_id):
            raise AlreadyPassedError

        questions = await self.list_questions(section_id)
        if not questions:
            raise NoQuestionsError

        attempt = await self.get_attempt(user_id, section_id)
        if attempt is None or not await self._consume_attempt(attempt):
            raise AttemptNotStartedError

        now = utcnow()
        if attempt.is_expired(now, self.grace_seconds):
            logger.warning(
                "assessment_submitted_late",
                user_id=str(user_id),
                section_id=str(section_id),
                expires_at=attempt.expires_at.isoformat(),
            )
            raise AttemptExpiredError

        question_ids = {q.id for q in questions}
        answered = {qid: idx for qid, idx in answers.items() if qid in question_ids}
        card = score_submission(questions, answered)

        result = AssessmentResult(
            user_id=user_id,
            section_id=section_id,
            score=card.score,
            total_questions=card.total_questions,
            correct_answers=card.correct_answers,
            answers=answered,
            passed=card.passed,
            date_taken=now,
        )
        await self.session.aexecute(
            self._insert_result,
            [
                result.id,
                result.user_id,
                result.section_id,
                result.score,
                result.total_questions,
                result.correct_answers,
                result.answers,
                result.passed,
                result.date_taken,
                result.certificate_generated,
            ],
        )
        await self.increment_rate_limit(user_id)

        logger.info(
            "assessment_submitted",
            user_id=str(user_id),
            section_id=str(section_id),
            result_id=str(result.id),
            score=result.score,
            passed=result.passed,
        )
        return result

    # ==========================================================================
    # Results
    # ==========================================================================

    async def get_result(self, result_id: UUID) -> AssessmentResult:
        """Get result by ID.

        Raises:
            ResultNotFoundError: If result doesn't exist
        """
        result = await self.session.aexecute(self._get_result, [result_id])
        row = result.one()
        if not row:
            raise ResultNotFoundError
        return AssessmentResult.from_row(row)

    async def list_user_results(self, user_id: UUID) -> list[AssessmentResult]:
        """A user's results, newest first."""
        rows = await self.session.aexecute(self._list_user_results, [user_id])
        results = [AssessmentResult.from_row(row) for row in rows]
        return sorted(results, key=lambda r: r.date_taken, reverse=True)

    async def list_all_results(self) -> list[AssessmentResult]:
        """Every result (admin report), newest first."""
        rows = await self.session.aexecute(self._list_all_results)
        results = [AssessmentResult.from_row(row) for row in rows]
        return sorted(results, key=lambda r: r.date_taken, reverse=True)

    async def has_passed(self, user_id: UUID, section_id: UUID) -> bool:
        results = await self.list_user_results(user_id)
        return any(r.section_id == section_id and r.passed for r in results)

    async def mark_certificate_generated(self, result_id: UUID) -> None:
        await self.session.aexecute(self._set_certificate_generated, [result_id])

    async def reset_results(self, user_id: UUID, section_id: UUID | None = None) -> int:
        """Delete a user's results (optionally for one section) and open attempts.

        Returns:
            Number of results deleted
        """
        results = await self.list_user_results(user_id)
        if section_id is not None:
            results = [r for r in results if r.section_id == section_id]

        mutations: list[Mutation] = [(self._delete_result, [r.id]) for r in results]
        if section_id is not None:
            mutations.append((self._delete_attempt, [user_id, section_id]))
        else:
            mutations.append((self._delete_user_attempts, [user_id]))
        await execute_logged_batch(self.session, mutations)

        logger.info(
            "assessment_results_reset",
            user_id=str(user_id),
            section_id=str(section_id) if section_id else None,
            deleted=len(results),
        )
        return len(results)
