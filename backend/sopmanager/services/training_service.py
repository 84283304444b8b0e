"""
Training Service - Modules, attempts, section progress and assessments

Handles:
- Module authoring with nested sections and quiz questions
- Starting attempts within the module's max_attempts
- Section completion and progress percentage
- Assessment scoring, retakes and certificate issue on pass
"""

from datetime import datetime
from typing import Optional, List, Dict, Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.exceptions import (
    ConflictError,
    MaxAttemptsExceededError,
    ResourceNotFoundError,
    TrainingIncompleteError,
)
from sopmanager.core.logging_config import logger
from sopmanager.models.audit_log import AuditAction
from sopmanager.models.training import (
    TrainingModule,
    TrainingSection,
    TrainingQuestion,
    UserTrainingProgress,
    UserSectionProgress,
    TrainingAssessment,
    QuestionResponse,
    TrainingStatus,
    AssessmentStatus,
)
from sopmanager.models.user import User
from sopmanager.schemas.training import ModuleCreate, ModuleUpdate, AssessmentSubmit
from sopmanager.services.audit_service import AuditContext, audit_service, diff_values
from sopmanager.services.certificate_service import certificate_service
from sopmanager.services.sop_service import sop_service
from sopmanager.utils.pagination import paginate

MODULE_FIELDS = (
    "sop_document_id", "title", "title_th", "description", "description_th", "duration_minutes",
    "passing_score", "max_attempts", "validity_days", "is_mandatory", "is_active",
)


def calculate_progress(required_section_ids: List[str], completed_section_ids: List[str]) -> int:
    """Percentage of required sections completed; 0 when nothing is required"""
    if not required_section_ids:
        return 0
    done = len(set(required_section_ids) & set(completed_section_ids))
    return int(round(done / len(required_section_ids) * 100))


def calculate_score(earned_points: int, total_points: int) -> float:
    """Earned over total points as a percentage, two decimals"""
    if total_points <= 0:
        return 0.0
    return round(earned_points / total_points * 100, 2)


class TrainingService:
    """Service for training modules and staff progress"""

    # ==================== MODULES ====================

    async def list_modules(
        self,
        db: AsyncSession,
        restaurant_id: str,
        include_inactive: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> dict:
        query = select(TrainingModule).where(TrainingModule.restaurant_id == restaurant_id)
        if not include_inactive:
            query = query.where(TrainingModule.is_active == True)  # noqa: E712
        query = query.order_by(TrainingModule.is_mandatory.desc(), TrainingModule.title)
        return await paginate(db, query, page, page_size)

    async def get_module(
        self,
        db: AsyncSession,
        restaurant_id: str,
        module_id: str,
        active_only: bool = False,
    ) -> TrainingModule:
        query = select(TrainingModule).where(
            TrainingModule.id == module_id,
            TrainingModule.restaurant_id == restaurant_id,
        )
        if active_only:
            query = query.where(TrainingModule.is_active == True)  # noqa: E712
        module = (await db.execute(query)).scalar_one_or_none()
        if not module:
            raise ResourceNotFoundError("TrainingModule", module_id)
        return module

    async def create_module(
        self,
        db: AsyncSession,
        restaurant_id: str,
        data: ModuleCreate,
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> TrainingModule:
        if data.sop_document_id:
            await sop_service.get_document(db, restaurant_id, data.sop_document_id)

        module = TrainingModule(
            **data.model_dump(exclude={"sections", "questions"}),
            restaurant_id=restaurant_id,
            is_active=True,
            created_by=actor.id,
        )
        db.add(module)
        await db.flush()

        for section in data.sections:
            db.add(TrainingSection(module_id=module.id, **section.model_dump()))
        for question in data.questions:
            db.add(TrainingQuestion(module_id=module.id, **question.model_dump()))

        audit_service.record(
            db, AuditAction.CREATE, "training_module", module.id, user=actor,
            new_values={"title": data.title, "sections": len(data.sections),
                        "questions": len(data.questions)},
            context=context,
        )
        await db.commit()

        logger.info(f"Created training module {module.id} '{module.title}'")
        module_id = module.id
        db.expunge(module)
        return await self.get_module(db, restaurant_id, module_id)

    async def update_module(
        self,
        db: AsyncSession,
        restaurant_id: str,
        module_id: str,
        data: ModuleUpdate,
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> TrainingModule:
        module = await self.get_module(db, restaurant_id, module_id)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("sop_document_id"):
            await sop_service.get_document(db, restaurant_id, changes["sop_document_id"])

        before = {f: getattr(module, f) for f in MODULE_FIELDS}
        for field, value in changes.items():
            setattr(module, field, value)

        old_values, new_values = diff_values(before, {f: getattr(module, f) for f in MODULE_FIELDS})
        if new_values:
            audit_service.record(
                db, AuditAction.UPDATE, "training_module", module.id, user=actor,
                old_values=old_values, new_values=new_values, context=context,
            )
        await db.commit()
        return module

    async def deactivate_module(
        self,
        db: AsyncSession,
        restaurant_id: str,
        module_id: str,
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> None:
        module = await self.get_module(db, restaurant_id, module_id)
        module.is_active = False
        audit_service.record(
            db, AuditAction.DELETE, "training_module", module.id, user=actor,
            old_values={"is_active": True}, new_values={"is_active": False}, context=context,
        )
        await db.commit()

    # ==================== PROGRESS ====================

    async def _attempts(self, db: AsyncSession, user_id: str, module_id: str) -> List[UserTrainingProgress]:
        result = await db.execute(
            select(UserTrainingProgress)
            .where(UserTrainingProgress.user_id == user_id, UserTrainingProgress.module_id == module_id)
            .order_by(UserTrainingProgress.attempt_number.desc())
        )
        return list(result.scalars().all())

    async def _current_attempt(self, db: AsyncSession, user: User, module_id: str) -> UserTrainingProgress:
        attempts = await self._attempts(db, user.id, module_id)
        if not attempts or attempts[0].status != TrainingStatus.IN_PROGRESS:
            raise ConflictError(
                "No training attempt in progress for this module",
                details={"module_id": module_id},
            )
        return attempts[0]

    async def completed_section_ids(self, db: AsyncSession, progress_id: str) -> List[str]:
        result = await db.execute(
            select(UserSectionProgress.section_id).where(
                UserSectionProgress.progress_id == progress_id,
                UserSectionProgress.is_completed == True,  # noqa: E712
            )
        )
        return [row[0] for row in result.all()]

    async def start_module(
        self,
        db: AsyncSession,
        user: User,
        module_id: str,
        context: Optional[AuditContext] = None,
    ) -> UserTrainingProgress:
        """Open the next attempt, or return the one already in progress"""
        module = await self.get_module(db, user.restaurant_id, module_id, active_only=True)
        attempts = await self._attempts(db, user.id, module.id)

        if attempts and attempts[0].status == TrainingStatus.IN_PROGRESS:
            return attempts[0]

        # Every attempt counts, passed ones included
        if attempts and attempts[0].attempt_number >= module.max_attempts:
            raise MaxAttemptsExceededError(module.max_attempts)

        now = datetime.utcnow()
        first_section = module.sections[0] if module.sections else None
        progress = UserTrainingProgress(
            user_id=user.id,
            module_id=module.id,
            restaurant_id=user.restaurant_id,
            status=TrainingStatus.IN_PROGRESS,
            progress_percentage=0,
            current_section_id=first_section.id if first_section else None,
            attempt_number=(attempts[0].attempt_number + 1) if attempts else 1,
            time_spent_minutes=0,
            started_at=now,
            last_accessed_at=now,
        )
        db.add(progress)
        await db.flush()

        audit_service.record(
            db, AuditAction.CREATE, "training_progress", progress.id, user=user,
            new_values={"module_id": module.id, "attempt_number": progress.attempt_number},
            context=context,
        )
        await db.commit()
        return progress

    async def complete_section(
        self,
        db: AsyncSession,
        user: User,
        module_id: str,
        section_id: str,
        time_spent_minutes: int = 0,
    ) -> Dict[str, Any]:
        module = await self.get_module(db, user.restaurant_id, module_id, active_only=True)
        section = next((s for s in module.sections if s.id == section_id), None)
        if not section:
            raise ResourceNotFoundError("TrainingSection", section_id)

        progress = await self._current_attempt(db, user, module.id)
        now = datetime.utcnow()

        result = await db.execute(
            select(UserSectionProgress).where(
                UserSectionProgress.progress_id == progress.id,
                UserSectionProgress.section_id == section.id,
            )
        )
        section_progress = result.scalar_one_or_none()
        if not section_progress:
            section_progress = UserSectionProgress(
                progress_id=progress.id,
                section_id=section.id,
                user_id=user.id,
                time_spent_minutes=0,
            )
            db.add(section_progress)
        section_progress.is_completed = True
        section_progress.completed_at = section_progress.completed_at or now
        section_progress.time_spent_minutes = (section_progress.time_spent_minutes or 0) + time_spent_minutes
        await db.flush()

        completed_ids = await self.completed_section_ids(db, progress.id)
        required_ids = [s.id for s in module.sections if s.is_required]

        progress.progress_percentage = calculate_progress(required_ids, completed_ids)
        progress.time_spent_minutes = (progress.time_spent_minutes or 0) + time_spent_minutes
        progress.last_accessed_at = now
        remaining = [s for s in module.sections if s.id not in completed_ids]
        progress.current_section_id = remaining[0].id if remaining else section.id

        await db.commit()
        return {"progress": progress, "completed_section_ids": completed_ids}

    async def list_progress(
        self,
        db: AsyncSession,
        restaurant_id: str,
        user_id: str,
        module_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        query = select(UserTrainingProgress).where(
            UserTrainingProgress.restaurant_id == restaurant_id,
            UserTrainingProgress.user_id == user_id,
        )
        if module_id:
            query = query.where(UserTrainingProgress.module_id == module_id)
        query = query.order_by(UserTrainingProgress.module_id, UserTrainingProgress.attempt_number.desc())
        attempts = (await db.execute(query)).scalars().all()

        return [
            {"progress": p, "completed_section_ids": await self.completed_section_ids(db, p.id)}
            for p in attempts
        ]

    # ==================== ASSESSMENT ====================

    async def submit_assessment(
        self,
        db: AsyncSession,
        user: User,
        module_id: str,
        submission: AssessmentSubmit,
        context: Optional[AuditContext] = None,
    ) -> Dict[str, Any]:
        """
        Score an attempt.

        All required sections must be complete. Passing completes the attempt
        and issues a certificate; failing closes the attempt as failed.
        """
        module = await self.get_module(db, user.restaurant_id, module_id, active_only=True)
        progress = await self._current_attempt(db, user, module.id)

        completed_ids = set(await self.completed_section_ids(db, progress.id))
        missing = [s.id for s in module.sections if s.is_required and s.id not in completed_ids]
        if missing:
            raise TrainingIncompleteError(progress.progress_percentage)

        now = datetime.utcnow()
        answers = {a.question_id: a.answer for a in submission.answers}
        questions = [q for q in module.questions if q.is_active]

        assessment = TrainingAssessment(
            user_id=user.id,
            module_id=module.id,
            progress_id=progress.id,
            restaurant_id=user.restaurant_id,
            attempt_number=progress.attempt_number,
            status=AssessmentStatus.PENDING,
            total_questions=len(questions),
            time_spent_minutes=submission.time_spent_minutes,
            started_at=progress.started_at,
        )
        db.add(assessment)
        await db.flush()

        earned = 0
        total = 0
        correct_count = 0
        scored = []
        for question in questions:
            answer = answers.get(question.id)
            is_correct = question.is_correct(answer)
            points = question.points if is_correct else 0
            total += question.points
            earned += points
            correct_count += int(is_correct)
            db.add(QuestionResponse(
                assessment_id=assessment.id,
                question_id=question.id,
                user_answer=answer,
                is_correct=is_correct,
                points_earned=points,
            ))
            scored.append((question, is_correct, points))

        # A module without questions is passed by completing its sections
        score = calculate_score(earned, total) if questions else 100.0
        passed = score >= module.passing_score

        assessment.correct_answers = correct_count
        assessment.score_percentage = score
        assessment.completed_at = now

        progress.time_spent_minutes = (progress.time_spent_minutes or 0) + submission.time_spent_minutes
        progress.last_accessed_at = now
        progress.completed_at = now

        attempts_remaining = max(0, module.max_attempts - progress.attempt_number)
        certificate = None
        if passed:
            assessment.status = AssessmentStatus.PASSED
            progress.status = TrainingStatus.COMPLETED
            progress.progress_percentage = 100
            certificate = await certificate_service.issue_certificate(db, user, module, assessment, context)
        else:
            assessment.status = AssessmentStatus.RETAKE_REQUIRED if attempts_remaining else AssessmentStatus.FAILED
            progress.status = TrainingStatus.FAILED

        # Answers are only revealed once the outcome is final
        reveal = passed or attempts_remaining == 0
        results = [
            {
                "question_id": question.id,
                "is_correct": is_correct,
                "points_earned": points,
                "correct_answer": question.correct_answer if reveal else None,
                "explanation": question.explanation if reveal else None,
                "explanation_th": question.explanation_th if reveal else None,
            }
            for question, is_correct, points in scored
        ]

        audit_service.record(
            db, AuditAction.CREATE, "training_assessment", assessment.id, user=user,
            new_values={"module_id": module.id, "score": score, "status": assessment.status},
            context=context,
        )
        await db.commit()

        logger.info(
            f"Assessment for module {module.id} by {user.email}: {score}% "
            f"({'passed' if passed else 'failed'})"
        )

        return {
            "assessment_id": assessment.id,
            "module_id": module.id,
            "attempt_number": assessment.attempt_number,
            "status": assessment.status,
            "total_questions": len(questions),
            "correct_answers": correct_count,
            "score_percentage": score,
            "passing_score": module.passing_score,
            "passed": passed,
            "attempts_remaining": attempts_remaining,
            "results": results,
            "certificate": certificate,
        }


training_service = TrainingService()
