"""
Certificate Service - Issue, verify, expire and revoke training certificates
"""

from datetime import datetime, timedelta
from typing import Optional, Dict, Any

from sqlalchemy import select, func, update, and_, extract
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.config import settings
from sopmanager.core.exceptions import ResourceNotFoundError, StatusUnchangedError
from sopmanager.core.logging_config import logger
from sopmanager.models.audit_log import AuditAction
from sopmanager.models.restaurant import Restaurant
from sopmanager.models.sop import SOPCategory, SOPDocument
from sopmanager.models.training import (
    TrainingAssessment,
    TrainingCertificate,
    TrainingModule,
    TrainingStatus,
    CertificateStatus,
    UserTrainingProgress,
)
from sopmanager.models.user import User
from sopmanager.services.audit_service import AuditContext, audit_service
from sopmanager.utils.pagination import paginate

UNKNOWN_CATEGORY = "XX"


def format_certificate_number(restaurant_name: str, category_code: Optional[str], year: int, seq: int) -> str:
    """{RR}-{CC}-{YYYY}-{seq:03d}"""
    restaurant_part = (restaurant_name or "").replace(" ", "")[:2].upper() or UNKNOWN_CATEGORY
    category_part = (category_code or UNKNOWN_CATEGORY)[:2].upper()
    return f"{restaurant_part}-{category_part}-{year}-{seq:03d}"


class CertificateService:
    """Training certificates for staff who pass a module assessment"""

    CERTIFICATE_TEMPLATE = """
    ╔══════════════════════════════════════════════════════════════════════════════╗
    ║                                                                              ║
    ║                          CERTIFICATE OF TRAINING                             ║
    ║                          ใบรับรองการฝึกอบรม                                     ║
    ║                                                                              ║
    ╠══════════════════════════════════════════════════════════════════════════════╣
    ║                                                                              ║
    ║   This is to certify that / ขอรับรองว่า                                         ║
    ║                                                                              ║
    ║       {user_name}
    ║       {user_name_th}
    ║                                                                              ║
    ║   has successfully completed the training module                             ║
    ║   ได้ผ่านการฝึกอบรมหลักสูตร                                                       ║
    ║                                                                              ║
    ║       {module_title}
    ║       {module_title_th}
    ║                                                                              ║
    ║   ───────────────────────────────────────────────────────────────────────    ║
    ║                                                                              ║
    ║   Score / คะแนน: {score}% (passing {passing_score}%)
    ║   Restaurant / ร้าน: {restaurant_name}
    ║                                                                              ║
    ║   ───────────────────────────────────────────────────────────────────────    ║
    ║                                                                              ║
    ║   Certificate No.: {certificate_number}
    ║   Issued On: {issue_date}
    ║   Valid Until: {expiry_date}
    ║   Status: {status}
    ║                                                                              ║
    ║   Verify at: {verify_url}
    ║                                                                              ║
    ╚══════════════════════════════════════════════════════════════════════════════╝
    """

    async def _category_code(self, db: AsyncSession, module: TrainingModule) -> Optional[str]:
        if not module.sop_document_id:
            return None
        result = await db.execute(
            select(SOPCategory.code)
            .join(SOPDocument, SOPDocument.category_id == SOPCategory.id)
            .where(SOPDocument.id == module.sop_document_id)
        )
        return result.scalar_one_or_none()

    async def next_certificate_number(
        self,
        db: AsyncSession,
        restaurant: Restaurant,
        category_code: Optional[str],
        issued_at: datetime,
    ) -> str:
        """Sequence is per restaurant per calendar year"""
        issued_this_year = await db.scalar(
            select(func.count(TrainingCertificate.id)).where(
                TrainingCertificate.restaurant_id == restaurant.id,
                extract("year", TrainingCertificate.issued_at) == issued_at.year,
            )
        ) or 0

        seq = issued_this_year + 1
        while True:
            number = format_certificate_number(restaurant.name, category_code, issued_at.year, seq)
            taken = await db.scalar(
                select(TrainingCertificate.id).where(TrainingCertificate.certificate_number == number)
            )
            if not taken:
                return number
            # Another restaurant with the same two-letter prefix holds this number
            seq += 1

    async def issue_certificate(
        self,
        db: AsyncSession,
        user: User,
        module: TrainingModule,
        assessment: TrainingAssessment,
        context: Optional[AuditContext] = None,
    ) -> TrainingCertificate:
        """Create the certificate for a passed assessment. Caller commits."""
        restaurant = await db.get(Restaurant, user.restaurant_id)
        category_code = await self._category_code(db, module)
        now = datetime.utcnow()

        certificate = TrainingCertificate(
            certificate_number=await self.next_certificate_number(db, restaurant, category_code, now),
            user_id=user.id,
            module_id=module.id,
            assessment_id=assessment.id,
            restaurant_id=user.restaurant_id,
            status=CertificateStatus.ACTIVE,
            issued_at=now,
            expires_at=now + timedelta(days=module.validity_days),
            certificate_data={
                "user_name": user.full_name,
                "user_name_th": user.full_name_th,
                "module_title": module.title,
                "module_title_th": module.title_th,
                "restaurant_name": restaurant.name,
                "restaurant_name_th": restaurant.name_th,
                "category_code": category_code or UNKNOWN_CATEGORY,
                "score": assessment.score_percentage,
                "passing_score": module.passing_score,
                "attempt_number": assessment.attempt_number,
            },
        )
        db.add(certificate)
        await db.flush()

        audit_service.record(
            db, AuditAction.CREATE, "training_certificate", certificate.id, user=user,
            new_values={"certificate_number": certificate.certificate_number, "module_id": module.id},
            context=context,
        )
        logger.info(f"Issued certificate {certificate.certificate_number} to {user.email}")
        return certificate

    async def expire_certificates(self, db: AsyncSession, restaurant_id: str, now: datetime = None) -> int:
        """Flip active certificates past expiry, and their completed progress, to expired"""
        now = now or datetime.utcnow()
        result = await db.execute(
            select(TrainingCertificate).where(
                TrainingCertificate.restaurant_id == restaurant_id,
                TrainingCertificate.status == CertificateStatus.ACTIVE,
                TrainingCertificate.expires_at.is_not(None),
                TrainingCertificate.expires_at <= now,
            )
        )
        expired = result.scalars().all()

        for certificate in expired:
            certificate.status = CertificateStatus.EXPIRED
            await db.execute(
                update(UserTrainingProgress)
                .where(
                    UserTrainingProgress.user_id == certificate.user_id,
                    UserTrainingProgress.module_id == certificate.module_id,
                    UserTrainingProgress.status == TrainingStatus.COMPLETED,
                )
                .values(status=TrainingStatus.EXPIRED)
            )

        if expired:
            await db.commit()
            logger.info(f"Expired {len(expired)} certificates for restaurant {restaurant_id}")
        return len(expired)

    async def list_certificates(
        self,
        db: AsyncSession,
        restaurant_id: str,
        user_id: Optional[str] = None,
        module_id: Optional[str] = None,
        status: Optional[CertificateStatus] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> dict:
        await self.expire_certificates(db, restaurant_id)

        conditions = [TrainingCertificate.restaurant_id == restaurant_id]
        if user_id:
            conditions.append(TrainingCertificate.user_id == user_id)
        if module_id:
            conditions.append(TrainingCertificate.module_id == module_id)
        if status:
            conditions.append(TrainingCertificate.status == status)

        query = (
            select(TrainingCertificate)
            .where(and_(*conditions))
            .order_by(TrainingCertificate.issued_at.desc())
        )
        return await paginate(db, query, page, page_size)

    async def get_certificate(
        self,
        db: AsyncSession,
        restaurant_id: str,
        certificate_id: str,
        owner_id: Optional[str] = None,
    ) -> TrainingCertificate:
        """Certificate in the tenant; `owner_id` narrows it to one staff member"""
        await self.expire_certificates(db, restaurant_id)

        query = select(TrainingCertificate).where(
            TrainingCertificate.id == certificate_id,
            TrainingCertificate.restaurant_id == restaurant_id,
        )
        if owner_id:
            query = query.where(TrainingCertificate.user_id == owner_id)
        certificate = (await db.execute(query)).scalar_one_or_none()
        if not certificate:
            raise ResourceNotFoundError("TrainingCertificate", certificate_id)
        return certificate

    async def verify_certificate(self, db: AsyncSession, restaurant_id: str, number: str) -> Dict[str, Any]:
        await self.expire_certificates(db, restaurant_id)

        result = await db.execute(
            select(TrainingCertificate).where(
                TrainingCertificate.certificate_number == number,
                TrainingCertificate.restaurant_id == restaurant_id,
            )
        )
        certificate = result.scalar_one_or_none()
        if not certificate:
            raise ResourceNotFoundError("TrainingCertificate", number)
        return {
            "valid": certificate.status == CertificateStatus.ACTIVE,
            "certificate": certificate,
        }

    def render_text(self, certificate: TrainingCertificate) -> str:
        """Plain-text rendering of a certificate"""
        data = certificate.certificate_data or {}
        return self.CERTIFICATE_TEMPLATE.format(
            user_name=data.get("user_name", ""),
            user_name_th=data.get("user_name_th") or "",
            module_title=(data.get("module_title") or "")[:60],
            module_title_th=(data.get("module_title_th") or "")[:60],
            score=f"{float(data.get('score') or 0):.1f}",
            passing_score=data.get("passing_score", ""),
            restaurant_name=data.get("restaurant_name", ""),
            certificate_number=certificate.certificate_number,
            issue_date=certificate.issued_at.strftime("%B %d, %Y"),
            expiry_date=certificate.expires_at.strftime("%B %d, %Y") if certificate.expires_at else "-",
            status=certificate.status.value.upper(),
            verify_url=f"{settings.CERTIFICATE_VERIFY_URL.rstrip('/')}/{certificate.certificate_number}",
        )

    async def revoke_certificate(
        self,
        db: AsyncSession,
        restaurant_id: str,
        certificate_id: str,
        reason: str,
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> TrainingCertificate:
        certificate = await self.get_certificate(db, restaurant_id, certificate_id)
        if certificate.status == CertificateStatus.REVOKED:
            raise StatusUnchangedError(CertificateStatus.REVOKED.value)

        old_status = certificate.status
        certificate.status = CertificateStatus.REVOKED
        certificate.revoked_at = datetime.utcnow()
        certificate.revoked_by = actor.id
        certificate.revoked_reason = reason

        audit_service.record(
            db, AuditAction.UPDATE, "training_certificate", certificate.id, user=actor,
            old_values={"status": old_status}, new_values={"status": CertificateStatus.REVOKED},
            metadata={"reason": reason}, context=context,
        )
        await db.commit()

        logger.info(f"Revoked certificate {certificate.certificate_number}: {reason}")
        return certificate


certificate_service = CertificateService()
