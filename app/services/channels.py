"""
app/services/channels.py
WhatsApp deep links and the Arabic messages embedded in them.
Pure string templating, no I/O.
"""
from urllib.parse import quote

from app.config import settings
from app.services.validation import normalize_phone

SERVICE_LABELS = {
    "teeth-whitening":    "تبييض الأسنان",
    "hollywood-smile":    "ابتسامة هوليوود",
    "dental-implants":    "زراعة الأسنان",
    "orthodontics":       "تقويم الأسنان",
    "dental-crowns":      "تركيبات الأسنان",
    "children-dentistry": "طب أسنان الأطفال",
    "root-canal":         "علاج العصب",
    "gum-treatment":      "علاج اللثة",
    "dental-cleaning":    "تنظيف الأسنان",
    "consultation":       "استشارة عامة",
}


def service_label(code: str) -> str:
    return SERVICE_LABELS.get(code) or code


def display_phone(phone: str) -> str:
    return normalize_phone(phone, settings.DEFAULT_COUNTRY_CODE)


def whatsapp_link(number: str, text: str) -> str:
    digits = "".join(ch for ch in number if ch.isdigit())
    return f"https://wa.me/{digits}?text={quote(text, safe='')}"


def booking_message(submission) -> str:
    """Visitor → clinic, sent right after the form is submitted."""
    lines = [
        f"مرحباً، أنا {submission.name}",
        f"رقم الهاتف: {display_phone(submission.phone_number)}",
        f"الخدمة المطلوبة: {service_label(submission.selected_service)}",
    ]
    if submission.message:
        lines.append(f"رسالة إضافية: {submission.message}")
    lines += ["", f"أرغب في حجز موعد في {settings.CLINIC_NAME}."]
    return "\n".join(lines)


def reply_message(submission) -> str:
    """Clinic → patient, opened from the admin dashboard."""
    lines = [
        f"مرحباً {submission.name}،",
        "",
        f"شكراً لتواصلك مع {settings.CLINIC_NAME}.",
        "",
        "تفاصيل طلبك:",
        f"- الاسم: {submission.name}",
        f"- رقم الهاتف: {display_phone(submission.phone_number)}",
        f"- الخدمة المطلوبة: {service_label(submission.selected_service)}",
    ]
    if submission.message:
        lines.append(f"- رسالة إضافية: {submission.message}")
    lines += [
        "",
        "سيتم التواصل معك قريباً لتحديد موعد مناسب.",
        "",
        settings.CLINIC_NAME,
    ]
    return "\n".join(lines)


def booking_link(submission) -> str:
    return whatsapp_link(settings.CLINIC_WHATSAPP_NUMBER, booking_message(submission))


def reply_link(submission) -> str:
    return whatsapp_link(submission.phone_number, reply_message(submission))
