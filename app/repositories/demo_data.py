# app/repositories/demo_data.py
"""
Seed data for demo / offline mode (no backend configured).
"""
from datetime import datetime, timedelta, timezone
from typing import Any

CATEGORY_AGE_RANGES: dict[str, str] = {
    "baby": "0-2 ปี",
    "preschool": "3-5 ปี",
    "elementary": "6-9 ปี",
    "preteen": "10-12 ปี",
}


def _book(
    id: str,
    title: str,
    subtitle: str,
    price: int,
    category: str,
    pages: int,
    features: list[str],
    original_price: int | None = None,
    is_new: bool = False,
    is_bestseller: bool = False,
    description: str | None = None,
) -> dict[str, Any]:
    return {
        "id": id,
        "title": title,
        "subtitle": subtitle,
        "description": description,
        "price": price,
        "original_price": original_price,
        "cover_image_url": None,
        "pdf_url": f"book-pdfs/{id}.pdf",
        "category": category,
        "age_range": CATEGORY_AGE_RANGES[category],
        "pages": pages,
        "features": features,
        "is_new": is_new,
        "is_bestseller": is_bestseller,
        "is_active": True,
    }


DEMO_BOOKS: list[dict[str, Any]] = [
    # วัยทารก (0-2 ปี)
    _book(
        "baby-1",
        "จิตวิทยาลึกลับของทารก",
        "Psychology of Babies",
        299,
        "baby",
        128,
        [
            "เข้าใจพัฒนาการสมองทารก",
            "เทคนิคการสื่อสารกับลูกน้อย",
            "วิธีสร้างความผูกพันที่ดี",
            "คำแนะนำจากนักจิตวิทยาเด็ก",
        ],
        original_price=399,
        is_bestseller=True,
        description=(
            "ค้นพบโลกที่ซ่อนอยู่ในจิตใจของทารก เข้าใจว่าลูกน้อยคิดและรู้สึกอย่างไร"
        ),
    ),
    _book(
        "baby-2",
        "ก่อนวัยอนุบาล สมองต้องการอะไร",
        "What Brains Need Before Preschool",
        349,
        "baby",
        156,
        [
            "กิจกรรมกระตุ้นสมอง 50 อย่าง",
            "อาหารที่ช่วยพัฒนาสมอง",
            "การนอนที่เหมาะสม",
            "ของเล่นที่ควรมี",
        ],
        is_new=True,
    ),
    _book(
        "baby-3",
        "ร้องไห้คือภาษา",
        "Crying is a Language",
        279,
        "baby",
        112,
        [
            "ถอดรหัสเสียงร้อง 5 ประเภท",
            "วิธี calming ที่ได้ผล",
            "เมื่อไหร่ควรกังวล",
            "เทคนิคจากพยาบาลเด็ก",
        ],
    ),
    # วัยอนุบาล (3-5 ปี)
    _book(
        "preschool-1",
        "จิตใจน้อยๆ ที่อยากรู้อยากเห็น",
        "Little Minds Full of Curiosity",
        329,
        "preschool",
        144,
        [
            'ตอบคำถาม "ทำไม" อย่างสร้างสรรค์',
            "กิจกรรมสำรวจธรรมชาติ",
            "การเล่านิทานที่กระตุ้นจินตนาการ",
            "วิธีตอบคำถามยากๆ",
        ],
        original_price=399,
        is_bestseller=True,
    ),
    _book(
        "preschool-2",
        "เมื่อลูกโต้เถียง",
        "When Kids Argue",
        299,
        "preschool",
        132,
        [
            "เข้าใจอารมณ์ของเด็ก",
            "เทคนิคการตั้งขอบเขต",
            "วิธีจัดการ tantrum",
            "การสื่อสารแบบบวก",
        ],
    ),
    _book(
        "preschool-3",
        "เล่นแล้วฉลาด",
        "Play Makes You Smart",
        359,
        "preschool",
        168,
        [
            "เกมพัฒนาทักษะ 100 เกม",
            "ของเล่น DIY งบประหยัด",
            "การเล่นกลุ่มและการแบ่งปัน",
            "เล่นอย่างไรให้ปลอดภัย",
        ],
        is_new=True,
    ),
    # วัยประถม (6-9 ปี)
    _book(
        "elementary-1",
        "ความมั่นใจเริ่มต้นที่บ้าน",
        "Confidence Starts at Home",
        379,
        "elementary",
        176,
        [
            "เทคนิคสร้างความมั่นใจ",
            "วิธีรับมือกับความล้มเหลว",
            "การชมที่มีประสิทธิภาพ",
            "สร้าง growth mindset",
        ],
        original_price=459,
        is_bestseller=True,
    ),
    _book(
        "elementary-2",
        "เมื่อลูกไม่อยากไปโรงเรียน",
        "When Kids Don't Want School",
        349,
        "elementary",
        152,
        [
            "หาสาเหตุที่แท้จริง",
            "เทคนิคการปรับตัว",
            "การสื่อสารกับครู",
            "วิธีสร้างความสุขในการเรียน",
        ],
    ),
    _book(
        "elementary-3",
        "จิตวิทยาของการบ้าน",
        "Psychology of Homework",
        329,
        "elementary",
        144,
        [
            "สร้างมุมเรียนรู้ที่บ้าน",
            "เทคนิคจัดการเวลา",
            "วิธีจดจ่อและไม่วอกแวก",
            "รางวัลที่เหมาะสม",
        ],
    ),
    # วัยก่อนวัยรุ่น (10-12 ปี)
    _book(
        "preteen-1",
        "เข้าใจวัยเปลี่ยน",
        "Understanding Puberty",
        399,
        "preteen",
        192,
        [
            "เปลี่ยนแปลงทางร่างกายและอารมณ์",
            "วิธีพูดคุยเรื่องลำบากใจ",
            "การให้พื้นที่ส่วนตัว",
            "สร้างความไว้วางใจ",
        ],
        original_price=499,
        is_bestseller=True,
    ),
    _book(
        "preteen-2",
        "โซเชียลมีเดียกับจิตใจวัยรุ่น",
        "Social Media and Teen Minds",
        379,
        "preteen",
        168,
        [
            "ตั้งกฎการใช้โซเชียลมีเดีย",
            "รับมือกับ cyberbullying",
            "สร้าง digital wellness",
            "ความเป็นส่วนตัวออนไลน์",
        ],
        is_new=True,
    ),
    _book(
        "preteen-3",
        "ความฝันและเป้าหมาย",
        "Dreams and Goals",
        359,
        "preteen",
        156,
        [
            "เทคนิคตั้งเป้าหมาย SMART",
            "วิธีรับมือกับความล้มเหลว",
            "ค้นหาความถนัด",
            "สร้างแรงบันดาลใจ",
        ],
    ),
]


def demo_orders(now: datetime | None = None) -> list[dict[str, Any]]:
    """
    Two sample orders: one waiting for a slip, one already delivered.
    """
    now = now or datetime.now(timezone.utc)
    return [
        {
            "id": "demo-1",
            "order_number": "ORD-2024-001",
            "customer_name": "คุณสมหญิง ใจดี",
            "customer_email": "somying@example.com",
            "customer_phone": "0812345678",
            "items": [
                {
                    "id": "baby-1",
                    "title": "จิตวิทยาลึกลับของทารก",
                    "price": 299,
                    "quantity": 1,
                    "pdf_url": "book-pdfs/baby-1.pdf",
                }
            ],
            "total_amount": 299,
            "status": "pending",
            "slip_image_url": None,
            "transfer_date": None,
            "transfer_time": None,
            "pdfs_sent": False,
            "admin_notes": None,
            "created_at": now,
            "updated_at": now,
        },
        {
            "id": "demo-2",
            "order_number": "ORD-2024-002",
            "customer_name": "คุณประยุทธ์ รักลูก",
            "customer_email": "prayuth@example.com",
            "customer_phone": "0923456789",
            "items": [
                {
                    "id": "preschool-1",
                    "title": "จิตใจน้อยๆ ที่อยากรู้อยากเห็น",
                    "price": 329,
                    "quantity": 1,
                    "pdf_url": "book-pdfs/preschool-1.pdf",
                },
                {
                    "id": "elementary-1",
                    "title": "ความมั่นใจเริ่มต้นที่บ้าน",
                    "price": 379,
                    "quantity": 1,
                    "pdf_url": "book-pdfs/elementary-1.pdf",
                },
            ],
            "total_amount": 708,
            "status": "verified",
            "slip_image_url": "order-slips/demo-2-1705303800000.jpg",
            "transfer_date": "2024-01-15",
            "transfer_time": "14:30",
            "pdfs_sent": True,
            "admin_notes": None,
            "created_at": now - timedelta(days=1),
            "updated_at": now,
        },
    ]
