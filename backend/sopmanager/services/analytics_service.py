"""
Analytics Service - Tenant-scoped KPIs for the manager dashboard
"""

from datetime import datetime, timedelta
from typing import Dict, List, Any

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.config import settings
from sopmanager.models.sop import SOPCategory, SOPDocument
from sopmanager.models.sop_activity import SOPCompletion, SOPCompletionStatus
from sopmanager.models.training import (
    TrainingAssessment,
    TrainingCertificate,
    TrainingModule,
    UserTrainingProgress,
    AssessmentStatus,
    CertificateStatus,
    TrainingStatus,
)
from sopmanager.models.translation import TranslationKey, Translation, TranslationStatus
from sopmanager.models.user import User
from sopmanager.services.certificate_service import certificate_service

FINISHED_COMPLETIONS = (SOPCompletionStatus.COMPLETED, SOPCompletionStatus.VERIFIED)


def fill_daily_series(counts: Dict[str, float], start: datetime, days: int) -> List[Dict[str, Any]]:
    """One point per day from `start`, zero where nothing happened"""
    series = []
    for offset in range(days + 1):
        day = (start + timedelta(days=offset)).strftime("%Y-%m-%d")
        series.append({"date": day, "value": counts.get(day, 0)})
    return series


def pass_rate(passed: int, failed: int) -> float:
    attempts = passed + failed
    return round(passed / attempts * 100, 2) if attempts else 0.0


class AnalyticsService:

    async def _daily_counts(self, db: AsyncSession, column, conditions: list) -> Dict[str, float]:
        day = func.date(column)
        result = await db.execute(
            select(day, func.count()).where(and_(*conditions)).group_by(day)
        )
        return {str(d): c for d, c in result.all()}

    async def _certificate_counts(self, db: AsyncSession, restaurant_id: str, now: datetime) -> Dict[str, int]:
        await certificate_service.expire_certificates(db, restaurant_id, now)
        active = await db.scalar(
            select(func.count(TrainingCertificate.id)).where(
                TrainingCertificate.restaurant_id == restaurant_id,
                TrainingCertificate.status == CertificateStatus.ACTIVE,
            )
        ) or 0
        expiring = await db.scalar(
            select(func.count(TrainingCertificate.id)).where(
                TrainingCertificate.restaurant_id == restaurant_id,
                TrainingCertificate.status == CertificateStatus.ACTIVE,
                TrainingCertificate.expires_at <= now + timedelta(days=settings.CERTIFICATE_EXPIRY_WARNING_DAYS),
            )
        ) or 0
        return {"active": active, "expiring": expiring}

    async def _assessment_outcomes(self, db: AsyncSession, conditions: list) -> Dict[AssessmentStatus, int]:
        result = await db.execute(
            select(TrainingAssessment.status, func.count(TrainingAssessment.id))
            .where(and_(*conditions))
            .group_by(TrainingAssessment.status)
        )
        return dict(result.all())

    async def dashboard(self, db: AsyncSession, restaurant_id: str, days: int = 30) -> Dict[str, Any]:
        now = datetime.utcnow()
        start = now - timedelta(days=days)

        total_staff = await db.scalar(
            select(func.count(User.id)).where(User.restaurant_id == restaurant_id)
        ) or 0
        active_staff = await db.scalar(
            select(func.count(User.id)).where(User.restaurant_id == restaurant_id, User.is_active == True)  # noqa: E712
        ) or 0

        status_rows = await db.execute(
            select(SOPDocument.status, func.count(SOPDocument.id))
            .where(SOPDocument.restaurant_id == restaurant_id, SOPDocument.is_active == True)  # noqa: E712
            .group_by(SOPDocument.status)
        )

        completions = await db.scalar(
            select(func.count(SOPCompletion.id)).where(
                SOPCompletion.restaurant_id == restaurant_id,
                SOPCompletion.status.in_(FINISHED_COMPLETIONS),
                SOPCompletion.created_at >= start,
            )
        ) or 0

        certificates = await self._certificate_counts(db, restaurant_id, now)
        outcomes = await self._assessment_outcomes(db, [
            TrainingAssessment.restaurant_id == restaurant_id,
            TrainingAssessment.completed_at >= start,
        ])
        failed = outcomes.get(AssessmentStatus.FAILED, 0) + outcomes.get(AssessmentStatus.RETAKE_REQUIRED, 0)

        return {
            "total_staff": total_staff,
            "active_staff": active_staff,
            "documents_by_status": {s.value: c for s, c in status_rows.all()},
            "completions_in_period": completions,
            "active_certificates": certificates["active"],
            "expiring_certificates": certificates["expiring"],
            "training_pass_rate": pass_rate(outcomes.get(AssessmentStatus.PASSED, 0), failed),
            "period_days": days,
        }

    async def sop_analytics(self, db: AsyncSession, restaurant_id: str, days: int = 30) -> Dict[str, Any]:
        now = datetime.utcnow()
        start = now - timedelta(days=days)
        doc_filter = [SOPDocument.restaurant_id == restaurant_id, SOPDocument.is_active == True]  # noqa: E712

        by_status = await db.execute(
            select(SOPDocument.status, func.count(SOPDocument.id)).where(*doc_filter).group_by(SOPDocument.status)
        )
        by_priority = await db.execute(
            select(SOPDocument.priority, func.count(SOPDocument.id)).where(*doc_filter).group_by(SOPDocument.priority)
        )
        by_category = await db.execute(
            select(SOPCategory.code, func.count(SOPDocument.id))
            .join(SOPCategory, SOPCategory.id == SOPDocument.category_id)
            .where(*doc_filter)
            .group_by(SOPCategory.code)
        )
        status_counts = {s.value: c for s, c in by_status.all()}

        completion_filter = [
            SOPCompletion.restaurant_id == restaurant_id,
            SOPCompletion.status.in_(FINISHED_COMPLETIONS),
            SOPCompletion.created_at >= start,
        ]
        totals = (await db.execute(
            select(
                func.count(SOPCompletion.id),
                func.avg(SOPCompletion.quality_rating),
                func.avg(SOPCompletion.time_spent_minutes),
            ).where(*completion_filter)
        )).one()

        top = await db.execute(
            select(SOPDocument.id, SOPDocument.title, SOPDocument.title_th, func.count(SOPCompletion.id).label("completions"))
            .join(SOPCompletion, SOPCompletion.sop_id == SOPDocument.id)
            .where(*completion_filter)
            .group_by(SOPDocument.id, SOPDocument.title, SOPDocument.title_th)
            .order_by(func.count(SOPCompletion.id).desc())
            .limit(10)
        )

        daily = await self._daily_counts(db, SOPCompletion.created_at, completion_filter)

        return {
            "total_documents": sum(status_counts.values()),
            "by_status": status_counts,
            "by_priority": {p.value: c for p, c in by_priority.all()},
            "by_category": dict(by_category.all()),
            "completions_total": totals[0] or 0,
            "average_quality_rating": round(float(totals[1]), 2) if totals[1] is not None else None,
            "average_time_minutes": round(float(totals[2] or 0), 2),
            "top_documents": [
                {"id": row.id, "title": row.title, "title_th": row.title_th, "completions": row.completions}
                for row in top.all()
            ],
            "daily_completions": fill_daily_series(daily, start, days),
        }

    async def training_analytics(self, db: AsyncSession, restaurant_id: str, days: int = 30) -> Dict[str, Any]:
        now = datetime.utcnow()
        start = now - timedelta(days=days)

        progress_filter = [
            UserTrainingProgress.restaurant_id == restaurant_id,
            UserTrainingProgress.created_at >= start,
        ]
        status_rows = await db.execute(
            select(UserTrainingProgress.status, func.count(UserTrainingProgress.id))
            .where(*progress_filter)
            .group_by(UserTrainingProgress.status)
        )
        progress_counts = dict(status_rows.all())

        assessment_filter = [
            TrainingAssessment.restaurant_id == restaurant_id,
            TrainingAssessment.completed_at >= start,
        ]
        outcomes = await self._assessment_outcomes(db, assessment_filter)
        passed = outcomes.get(AssessmentStatus.PASSED, 0)
        failed = outcomes.get(AssessmentStatus.FAILED, 0) + outcomes.get(AssessmentStatus.RETAKE_REQUIRED, 0)
        average_score = await db.scalar(
            select(func.avg(TrainingAssessment.score_percentage)).where(*assessment_filter)
        )

        module_rows = await db.execute(
            select(
                TrainingModule.id,
                TrainingModule.title,
                func.count(UserTrainingProgress.id),
            )
            .outerjoin(UserTrainingProgress, and_(
                UserTrainingProgress.module_id == TrainingModule.id,
                UserTrainingProgress.created_at >= start,
            ))
            .where(TrainingModule.restaurant_id == restaurant_id, TrainingModule.is_active == True)  # noqa: E712
            .group_by(TrainingModule.id, TrainingModule.title)
            .order_by(TrainingModule.title)
        )

        per_module_outcomes = await db.execute(
            select(
                TrainingAssessment.module_id,
                TrainingAssessment.status,
                func.count(TrainingAssessment.id),
                func.avg(TrainingAssessment.score_percentage),
            )
            .where(*assessment_filter)
            .group_by(TrainingAssessment.module_id, TrainingAssessment.status)
        )
        module_stats: Dict[str, Dict[str, Any]] = {}
        for module_id, status, count, avg_score in per_module_outcomes.all():
            stats = module_stats.setdefault(module_id, {"completions": 0, "failures": 0, "score_sum": 0.0, "n": 0})
            if status == AssessmentStatus.PASSED:
                stats["completions"] += count
            else:
                stats["failures"] += count
            stats["score_sum"] += float(avg_score or 0) * count
            stats["n"] += count

        modules = []
        for module_id, title, enrollments in module_rows.all():
            stats = module_stats.get(module_id, {"completions": 0, "failures": 0, "score_sum": 0.0, "n": 0})
            modules.append({
                "module_id": module_id,
                "title": title,
                "enrollments": enrollments,
                "completions": stats["completions"],
                "failures": stats["failures"],
                "average_score": round(stats["score_sum"] / stats["n"], 2) if stats["n"] else None,
            })

        certificates = await self._certificate_counts(db, restaurant_id, now)
        daily = await self._daily_counts(
            db, TrainingAssessment.completed_at,
            assessment_filter + [TrainingAssessment.status == AssessmentStatus.PASSED],
        )

        return {
            "enrollments": sum(progress_counts.values()),
            "completions": progress_counts.get(TrainingStatus.COMPLETED, 0),
            "failures": progress_counts.get(TrainingStatus.FAILED, 0),
            "average_score": round(float(average_score), 2) if average_score is not None else None,
            "pass_rate": pass_rate(passed, failed),
            "active_certificates": certificates["active"],
            "expiring_certificates": certificates["expiring"],
            "modules": modules,
            "daily_completions": fill_daily_series(daily, start, days),
        }

    async def translation_analytics(self, db: AsyncSession) -> Dict[str, Any]:
        """Translations are shared by every restaurant"""
        total_keys = await db.scalar(
            select(func.count(TranslationKey.id)).where(TranslationKey.is_active == True)  # noqa: E712
        ) or 0

        published_rows = await db.execute(
            select(Translation.locale, func.count(Translation.id))
            .join(TranslationKey, TranslationKey.id == Translation.key_id)
            .where(TranslationKey.is_active == True, Translation.status == TranslationStatus.PUBLISHED)  # noqa: E712
            .group_by(Translation.locale)
        )
        published = dict(published_rows.all())

        status_rows = await db.execute(
            select(Translation.status, func.count(Translation.id)).group_by(Translation.status)
        )

        locales = []
        for locale in settings.TRANSLATION_LOCALES:
            count = published.get(locale, 0)
            locales.append({
                "locale": locale,
                "published": count,
                "total_keys": total_keys,
                "completeness": round(count / total_keys * 100, 2) if total_keys else 0.0,
                "missing": max(0, total_keys - count),
            })

        return {
            "total_keys": total_keys,
            "locales": locales,
            "status_breakdown": {s.value: c for s, c in status_rows.all()},
        }


analytics_service = AnalyticsService()
