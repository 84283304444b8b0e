"""
Database Seed Data Module

Standard SOP categories, the demo restaurant and its demo staff, a few
approved SOPs and the published UI strings the tablet needs on first boot.
Run with: python -m sopmanager.db.seed_data
"""
import asyncio
import sys
from datetime import datetime, date
from typing import Dict, List

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.database import AsyncSessionLocal, init_db
from sopmanager.core.security import hash_pin
from sopmanager.models import (
    Restaurant,
    User,
    UserRole,
    SOPCategory,
    SOPDocument,
    SOPStatus,
    SOPPriority,
    TranslationKey,
    Translation,
    TranslationCategory,
    TranslationStatus,
)


# ==================== Sample Data Constants ====================

SOP_CATEGORIES = [
    ("FOOD_SAFETY", "Food Safety & Hygiene", "ความปลอดภัยและสุขอนามัยอาหาร",
     "Food handling, storage, and safety procedures", "ขั้นตอนการจัดการ เก็บรักษา และความปลอดภัยของอาหาร",
     "shield-check", "#e74c3c"),
    ("CLEANING", "Cleaning & Sanitation", "การทำความสะอาดและสุขาภิบาล",
     "Cleaning schedules, sanitization procedures", "ตารางการทำความสะอาด ขั้นตอนการฆ่าเชื้อ",
     "spray-can", "#3498db"),
    ("CUSTOMER_SERVICE", "Customer Service", "การบริการลูกค้า",
     "Guest interaction, complaint handling, service standards",
     "การปฏิสัมพันธ์กับแขก การจัดการข้อร้องเรียน มาตรฐานการบริการ",
     "users", "#2ecc71"),
    ("KITCHEN_OPS", "Kitchen Operations", "การดำเนินงานครัว",
     "Cooking procedures, equipment operation, kitchen workflow",
     "ขั้นตอนการทำอาหาร การใช้เครื่องมือ ขั้นตอนการทำงานในครัว",
     "chef-hat", "#f39c12"),
    ("INVENTORY", "Inventory Management", "การจัดการสินค้าคงคลัง",
     "Stock control, ordering, supplier management", "การควบคุมสต็อก การสั่งซื้อ การจัดการผู้จัดจำหน่าย",
     "package", "#9b59b6"),
    ("CASH_HANDLING", "Cash Handling & POS", "การจัดการเงินสดและระบบขาย",
     "Payment processing, cash register, financial procedures",
     "การประมวลผลการชำระเงิน เครื่องบันทึกเงินสด ขั้นตอนทางการเงิน",
     "credit-card", "#1abc9c"),
    ("STAFF_TRAINING", "Staff Training", "การฝึกอบรมพนักงาน",
     "Employee onboarding, skill development, certification", "การปฐมนิเทศพนักงาน การพัฒนาทักษะ การรับรอง",
     "graduation-cap", "#34495e"),
    ("SAFETY_SECURITY", "Safety & Security", "ความปลอดภัยและการรักษาความปลอดภัย",
     "Emergency procedures, accident prevention, security protocols",
     "ขั้นตอนฉุกเฉิน การป้องกันอุบัติเหตุ โปรโตคอลความปลอดภัย",
     "shield", "#e67e22"),
    ("MAINTENANCE", "Equipment Maintenance", "การบำรุงรักษาอุปกรณ์",
     "Equipment care, preventive maintenance, repair procedures",
     "การดูแลอุปกรณ์ การบำรุงรักษาเชิงป้องกัน ขั้นตอนการซ่อมแซม",
     "wrench", "#95a5a6"),
    ("QUALITY_CONTROL", "Quality Control", "การควบคุมคุณภาพ",
     "Food quality standards, taste testing, presentation", "มาตรฐานคุณภาพอาหาร การทดสอบรสชาติ การจัดเสิร์ฟ",
     "star", "#f1c40f"),
    ("OPENING_CLOSING", "Opening & Closing", "การเปิดและปิดร้าน",
     "Daily startup and shutdown procedures", "ขั้นตอนการเปิดและปิดร้านประจำวัน",
     "clock", "#2c3e50"),
    ("DELIVERY_TAKEOUT", "Delivery & Takeout", "การจัดส่งและสั่งกลับบ้าน",
     "Order packaging, delivery protocols, pickup procedures",
     "การบรรจุออเดอร์ โปรโตคอลการจัดส่ง ขั้นตอนการรับสินค้า",
     "truck", "#8e44ad"),
    ("WASTE_MANAGEMENT", "Waste Management", "การจัดการขยะ",
     "Waste disposal, recycling, environmental compliance",
     "การกำจัดขยะ การรีไซเคิล การปฏิบัติตามกฎหมายสิ่งแวดล้อม",
     "trash-2", "#27ae60"),
    ("COMPLIANCE", "Regulatory Compliance", "การปฏิบัติตามกฎระเบียบ",
     "Health permits, inspections, legal requirements", "ใบอนุญาตด้านสุขภาพ การตรวจสอบ ข้อกำหนดทางกฎหมาย",
     "file-text", "#d35400"),
    ("MARKETING_PROMO", "Marketing & Promotions", "การตลาดและโปรโมชั่น",
     "Promotional campaigns, social media, customer engagement",
     "แคมเปญส่งเสริมการขาย โซเชียลมีเดีย การมีส่วนร่วมของลูกค้า",
     "megaphone", "#c0392b"),
    ("EMERGENCY", "Emergency Procedures", "ขั้นตอนฉุกเฉิน",
     "Crisis management, emergency contacts, evacuation plans", "การจัดการวิกฤต ผู้ติดต่อฉุกเฉิน แผนการอพยพ",
     "alert-triangle", "#e74c3c"),
]

DEMO_RESTAURANT = {
    "name": "Krong Thai Restaurant",
    "name_th": "ร้านกรองไทย",
    "address": "123 Main Street, Bangkok 10110, Thailand",
    "address_th": "123 ถนนใหญ่ กรุงเทพฯ 10110",
    "phone": "+66-2-123-4567",
    "email": "info@krongthai.com",
    "timezone": "Asia/Bangkok",
    "settings": {"language_default": "th", "currency": "THB"},
}

# Demo PINs are set directly and skip the strength policy
DEMO_USERS = [
    {"email": "admin@krongthai.com", "pin": "1234", "role": UserRole.ADMIN,
     "full_name": "Admin User", "full_name_th": "ผู้ดูแลระบบ",
     "position": "System Administrator", "position_th": "ผู้ดูแลระบบ"},
    {"email": "manager@krongthai.com", "pin": "5678", "role": UserRole.MANAGER,
     "full_name": "Somchai Jaidee", "full_name_th": "สมชาย ใจดี",
     "position": "Restaurant Manager", "position_th": "ผู้จัดการร้านอาหาร"},
    {"email": "staff@krongthai.com", "pin": "9999", "role": UserRole.STAFF,
     "full_name": "Malee Suksan", "full_name_th": "มาลี สุขสาร",
     "position": "Server", "position_th": "พนักงานเสิร์ฟ"},
]

SAMPLE_SOPS = [
    {
        "category": "FOOD_SAFETY",
        "title": "Hand Washing Procedure",
        "title_th": "ขั้นตอนการล้างมือ",
        "content": "All staff must wash hands before handling food, after breaks and after touching raw meat.",
        "content_th": "พนักงานทุกคนต้องล้างมือก่อนสัมผัสอาหาร หลังพัก และหลังสัมผัสเนื้อสัตว์ดิบ",
        "steps": [
            {"step": 1, "text": "Wet hands with warm water"},
            {"step": 2, "text": "Apply soap and scrub for 20 seconds"},
            {"step": 3, "text": "Rinse and dry with a paper towel"},
        ],
        "steps_th": [
            {"step": 1, "text": "ทำให้มือเปียกด้วยน้ำอุ่น"},
            {"step": 2, "text": "ใช้สบู่และถูมือเป็นเวลา 20 วินาที"},
            {"step": 3, "text": "ล้างออกและเช็ดมือด้วยกระดาษ"},
        ],
        "tags": ["hygiene", "hands"],
        "tags_th": ["สุขอนามัย", "มือ"],
        "priority": SOPPriority.CRITICAL,
    },
    {
        "category": "CUSTOMER_SERVICE",
        "title": "Greeting Guests",
        "title_th": "การต้อนรับแขก",
        "content": "Greet every guest within 30 seconds of arrival with a wai and a smile.",
        "content_th": "ต้อนรับแขกทุกคนภายใน 30 วินาทีหลังมาถึงด้วยการไหว้และรอยยิ้ม",
        "steps": [
            {"step": 1, "text": "Make eye contact and smile"},
            {"step": 2, "text": "Say 'Sawasdee ka/krub, welcome to Krong Thai'"},
            {"step": 3, "text": "Ask for the number of guests and lead them to a table"},
        ],
        "steps_th": [
            {"step": 1, "text": "สบตาและยิ้ม"},
            {"step": 2, "text": "กล่าว 'สวัสดีค่ะ/ครับ ยินดีต้อนรับสู่กรองไทย'"},
            {"step": 3, "text": "สอบถามจำนวนแขกและนำไปยังโต๊ะ"},
        ],
        "tags": ["service", "greeting"],
        "tags_th": ["บริการ", "ต้อนรับ"],
        "priority": SOPPriority.HIGH,
    },
    {
        "category": "CLEANING",
        "title": "End of Day Kitchen Cleaning",
        "title_th": "การทำความสะอาดครัวปลายวัน",
        "content": "Clean and sanitize all kitchen surfaces and equipment at closing.",
        "content_th": "ทำความสะอาดและฆ่าเชื้อพื้นผิวและอุปกรณ์ในครัวทั้งหมดเมื่อปิดร้าน",
        "steps": [],
        "steps_th": [],
        "tags": ["cleaning", "closing"],
        "tags_th": ["ทำความสะอาด", "ปิดร้าน"],
        "priority": SOPPriority.MEDIUM,
    },
]

UI_STRINGS = [
    ("common.loading", TranslationCategory.COMMON, "Loading...", "กำลังโหลด..."),
    ("common.save", TranslationCategory.COMMON, "Save", "บันทึก"),
    ("common.cancel", TranslationCategory.COMMON, "Cancel", "ยกเลิก"),
    ("auth.enter_pin", TranslationCategory.AUTH, "Enter your 4-digit PIN", "กรุณาใส่รหัส PIN 4 หลัก"),
    ("auth.login", TranslationCategory.AUTH, "Sign in", "เข้าสู่ระบบ"),
    ("navigation.dashboard", TranslationCategory.NAVIGATION, "Dashboard", "แดชบอร์ด"),
    ("navigation.sops", TranslationCategory.NAVIGATION, "SOPs", "ขั้นตอนการปฏิบัติงาน"),
    ("navigation.training", TranslationCategory.NAVIGATION, "Training", "การฝึกอบรม"),
    ("search.placeholder", TranslationCategory.SEARCH, "Search procedures", "ค้นหาขั้นตอน"),
]


async def seed_categories(db: AsyncSession) -> Dict[str, SOPCategory]:
    """Create the standard SOP categories that are missing"""
    result = await db.execute(select(SOPCategory))
    categories = {c.code: c for c in result.scalars().all()}

    for sort_order, (code, name, name_th, desc, desc_th, icon, color) in enumerate(SOP_CATEGORIES, start=1):
        if code in categories:
            continue
        category = SOPCategory(
            code=code,
            name=name,
            name_th=name_th,
            description=desc,
            description_th=desc_th,
            icon=icon,
            color=color,
            sort_order=sort_order,
            is_active=True,
        )
        db.add(category)
        categories[code] = category

    await db.flush()
    print(f"Categories ready: {len(categories)}")
    return categories


async def seed_restaurant(db: AsyncSession) -> Restaurant:
    result = await db.execute(select(Restaurant).where(Restaurant.name == DEMO_RESTAURANT["name"]))
    restaurant = result.scalar_one_or_none()
    if restaurant:
        print(f"Restaurant exists: {restaurant.name}")
        return restaurant

    restaurant = Restaurant(**DEMO_RESTAURANT, is_active=True)
    db.add(restaurant)
    await db.flush()
    print(f"Created restaurant: {restaurant.name}")
    return restaurant


async def seed_users(db: AsyncSession, restaurant: Restaurant) -> List[User]:
    """Create demo admin, manager and staff accounts"""
    users = []
    for data in DEMO_USERS:
        result = await db.execute(select(User).where(User.email == data["email"]))
        user = result.scalar_one_or_none()
        if not user:
            fields = {k: v for k, v in data.items() if k != "pin"}
            user = User(
                **fields,
                pin_hash=hash_pin(data["pin"]),
                restaurant_id=restaurant.id,
                is_active=True,
                pin_changed_at=datetime.utcnow(),
                pin_attempts=0,
            )
            db.add(user)
        users.append(user)

    await db.flush()
    print(f"Demo users ready: {len(users)}")
    return users


async def seed_sops(
    db: AsyncSession,
    restaurant: Restaurant,
    categories: Dict[str, SOPCategory],
    author: User,
) -> List[SOPDocument]:
    """Approved sample SOPs so staff have something to read on day one"""
    documents = []
    for data in SAMPLE_SOPS:
        result = await db.execute(
            select(SOPDocument).where(
                SOPDocument.restaurant_id == restaurant.id,
                SOPDocument.title == data["title"],
            )
        )
        if result.scalar_one_or_none():
            continue

        fields = {k: v for k, v in data.items() if k != "category"}
        document = SOPDocument(
            **fields,
            category_id=categories[data["category"]].id,
            restaurant_id=restaurant.id,
            status=SOPStatus.APPROVED,
            version=1,
            effective_date=date.today(),
            created_by=author.id,
            updated_by=author.id,
            approved_by=author.id,
            approved_at=datetime.utcnow(),
            is_active=True,
        )
        db.add(document)
        documents.append(document)

    await db.flush()
    print(f"Created {len(documents)} sample SOPs")
    return documents


async def seed_ui_strings(db: AsyncSession, author: User) -> List[TranslationKey]:
    """Published en/th values for the login and navigation screens"""
    keys = []
    now = datetime.utcnow()
    for key_name, category, value_en, value_th in UI_STRINGS:
        result = await db.execute(select(TranslationKey.id).where(TranslationKey.key_name == key_name))
        if result.scalar_one_or_none():
            continue

        key = TranslationKey(
            key_name=key_name,
            category=category,
            namespace=TranslationKey.namespace_for(key_name),
            is_active=True,
            created_by=author.id,
        )
        db.add(key)
        await db.flush()

        for locale, value in (("en", value_en), ("th", value_th)):
            translation = Translation(
                key_id=key.id,
                locale=locale,
                status=TranslationStatus.PUBLISHED,
                version=1,
                created_by=author.id,
                updated_by=author.id,
                approved_by=author.id,
                approved_at=now,
                published_by=author.id,
                published_at=now,
            )
            translation.set_value(value)
            db.add(translation)
        keys.append(key)

    await db.flush()
    print(f"Created {len(keys)} translation keys")
    return keys


async def seed_all():
    """Seed all data"""
    print("=" * 50)
    print("Starting database seeding...")
    print("=" * 50)

    await init_db()

    async with AsyncSessionLocal() as db:
        try:
            categories = await seed_categories(db)
            restaurant = await seed_restaurant(db)
            users = await seed_users(db, restaurant)
            admin = users[0]
            await seed_sops(db, restaurant, categories, admin)
            await seed_ui_strings(db, admin)

            await db.commit()
            print("=" * 50)
            print("Database seeding completed successfully!")
            print("=" * 50)

        except Exception as e:
            await db.rollback()
            print(f"Error seeding database: {e}")
            raise


async def clear_all():
    """Clear all data from database"""
    print("Clearing all data...")
    async with AsyncSessionLocal() as db:
        # Delete in reverse order of dependencies
        for table in (
            "translation_cache",
            "translation_history",
            "translations",
            "translation_keys",
            "audit_logs",
            "training_certificates",
            "training_question_responses",
            "training_assessments",
            "user_section_progress",
            "user_training_progress",
            "training_questions",
            "training_sections",
            "training_modules",
            "sop_completions",
            "user_bookmarks",
            "sop_approvals",
            "sop_versions",
            "sop_documents",
            "sop_categories",
            "staff_sessions",
            "auth_users",
            "restaurants",
        ):
            await db.execute(text(f"DELETE FROM {table}"))
        await db.commit()
        print("All data cleared!")


def main():
    if len(sys.argv) > 1 and sys.argv[1] == "clear":
        asyncio.run(clear_all())
    else:
        asyncio.run(seed_all())


if __name__ == "__main__":
    main()
