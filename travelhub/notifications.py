"""Outgoing email: booking alerts, confirmations, status updates, admin credentials.

Every sender except :func:`send_test_email` is best-effort. Delivery is
attempted ``MAIL_SEND_ATTEMPTS`` times, failures are logged and the caller
only learns the outcome through the returned bool.
"""
from __future__ import annotations

import re
from smtplib import SMTPException

from flask import current_app, render_template
from flask_mail import Message

from .extensions import mail
from .models import Booking, EmailSetting, User

TRANSLATIONS = {
    "en": {
        "new_booking_received": "New Booking Received",
        "booking_request_received": "Booking Request Received",
        "new_booking_intro": "A new booking has been submitted through the website and requires your attention.",
        "thank_you_for_choosing": "Thank you for choosing",
        "received_intro": "We have successfully received your booking request and are excited to help you create an amazing travel experience.",
        "customer_information": "Customer Information:",
        "booking_details": "Booking Details:",
        "your_booking_details": "Your Booking Details:",
        "name": "Name",
        "email": "Email",
        "phone": "Phone",
        "booking_number": "Booking Number",
        "tour": "Tour",
        "service": "Service",
        "start_date": "Start Date",
        "travelers": "Travelers",
        "total_amount": "Total Amount",
        "special_requests": "Special Requests",
        "action_required": "Action Required:",
        "contact_customer": "Please contact the customer within 24 hours to confirm this booking and provide payment instructions.",
        "automated_notification": "This is an automated notification from",
        "booking_system": "booking system.",
        "dear": "Dear",
        "what_happens_next": "What happens next?",
        "next_steps": [
            "Our team will review your booking request",
            "We'll contact you within 24 hours to confirm availability",
            "You'll receive payment instructions once confirmed",
            "Final booking confirmation after payment",
        ],
        "important": "Important:",
        "keep_booking_number": "Please keep this booking number for your records. You'll need it for all communications regarding your booking.",
        "questions_contact": "If you have any questions or need to make changes to your booking, please don't hesitate to contact us.",
        "thank_you_travel": "Thank you for choosing us for your travel needs!",
        "automated_confirmation": "This is an automated confirmation email.",
        "persons": "person(s)",
    },
    "vi": {
        "new_booking_received": "Đơn Đặt Chỗ Mới",
        "booking_request_received": "Đã Nhận Yêu Cầu Đặt Chỗ",
        "new_booking_intro": "Một đơn đặt chỗ mới đã được gửi qua website và cần được xử lý.",
        "thank_you_for_choosing": "Cảm ơn bạn đã chọn",
        "received_intro": "Chúng tôi đã nhận được yêu cầu đặt chỗ của bạn và rất vui mừng được giúp bạn tạo nên một trải nghiệm du lịch tuyệt vời.",
        "customer_information": "Thông Tin Khách Hàng:",
        "booking_details": "Chi Tiết Đặt Chỗ:",
        "your_booking_details": "Chi Tiết Đặt Chỗ Của Bạn:",
        "name": "Họ Tên",
        "email": "Email",
        "phone": "Số Điện Thoại",
        "booking_number": "Mã Đặt Chỗ",
        "tour": "Tour",
        "service": "Dịch Vụ",
        "start_date": "Ngày Bắt Đầu",
        "travelers": "Số Khách",
        "total_amount": "Tổng Tiền",
        "special_requests": "Yêu Cầu Đặc Biệt",
        "action_required": "Cần Thực Hiện:",
        "contact_customer": "Vui lòng liên hệ với khách hàng trong vòng 24 giờ để xác nhận đặt chỗ này và cung cấp hướng dẫn thanh toán.",
        "automated_notification": "Đây là thông báo tự động từ hệ thống đặt chỗ của",
        "booking_system": "",
        "dear": "Kính gửi",
        "what_happens_next": "Các bước tiếp theo?",
        "next_steps": [
            "Đội ngũ của chúng tôi sẽ xem xét yêu cầu đặt chỗ của bạn",
            "Chúng tôi sẽ liên hệ với bạn trong vòng 24 giờ để xác nhận",
            "Bạn sẽ nhận được hướng dẫn thanh toán sau khi được xác nhận",
            "Xác nhận đặt chỗ cuối cùng sau khi thanh toán",
        ],
        "important": "Quan Trọng:",
        "keep_booking_number": "Vui lòng lưu mã đặt chỗ này để theo dõi. Bạn sẽ cần nó cho mọi liên lạc liên quan đến đặt chỗ của mình.",
        "questions_contact": "Nếu bạn có bất kỳ câu hỏi nào hoặc cần thay đổi đặt chỗ, vui lòng liên hệ với chúng tôi.",
        "thank_you_travel": "Cảm ơn bạn đã chọn chúng tôi cho nhu cầu du lịch của bạn!",
        "automated_confirmation": "Đây là email xác nhận tự động.",
        "persons": "người",
    },
}

STATUS_STYLES = {
    "confirmed": {
        "title": "Booking Confirmed!",
        "message": "Great news! Your booking has been confirmed.",
        "color": "#22c55e",
        "bg_color": "#f0fdf4",
    },
    "contacted": {
        "title": "We've Contacted You",
        "message": "Our team has reached out to you regarding your booking.",
        "color": "#3b82f6",
        "bg_color": "#eff6ff",
    },
    "completed": {
        "title": "Booking Completed",
        "message": "Thank you for traveling with us! We hope you had a wonderful experience.",
        "color": "#8b5cf6",
        "bg_color": "#f5f3ff",
    },
    "cancelled": {
        "title": "Booking Cancelled",
        "message": "Your booking has been cancelled as requested.",
        "color": "#ef4444",
        "bg_color": "#fef2f2",
    },
}

_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")


def default_email_settings() -> dict[str, str]:
    config = current_app.config
    return {
        "company_email": config["COMPANY_EMAIL"],
        "company_name": config["COMPANY_NAME"],
        "email_from_name": f"{config['COMPANY_NAME']} Team",
        "booking_notification_enabled": "true",
        "customer_confirmation_enabled": "true",
        "admin_notification_subject": "New Booking Received - {booking_number}",
        "customer_confirmation_subject": "Booking Confirmation - {booking_number}",
        "admin_email_body": "",
        "customer_email_body": "",
    }


def get_email_settings() -> dict[str, str]:
    """Stored settings layered over the defaults."""
    settings = default_email_settings()
    for row in EmailSetting.query.all():
        if row.setting_value is not None:
            settings[row.setting_key] = row.setting_value
    return settings


def fill_template(template: str, variables: dict[str, object]) -> str:
    """Replace ``{key}`` placeholders; unknown keys are left untouched."""
    def _replace(match: re.Match) -> str:
        key = match.group(1)
        return str(variables[key]) if key in variables else match.group(0)

    return _PLACEHOLDER_RE.sub(_replace, template or "")


def format_amount(amount, currency: str = "USD") -> str:
    return f"{float(amount or 0):,.2f} {currency}"


def _sender(settings: dict[str, str]) -> tuple[str, str]:
    address = current_app.config.get("MAIL_DEFAULT_SENDER") or settings["company_email"]
    return settings["email_from_name"], address


def _deliver(message: Message) -> None:
    attempts = max(int(current_app.config.get("MAIL_SEND_ATTEMPTS", 1)), 1)
    for attempt in range(1, attempts + 1):
        try:
            mail.send(message)
            return
        except (SMTPException, OSError) as exc:
            current_app.logger.warning(
                "Email %r to %s failed (attempt %d/%d): %s",
                message.subject, message.recipients, attempt, attempts, exc,
            )
            if attempt == attempts:
                raise


def send_email(subject: str, recipients: list[str], html: str, settings: dict[str, str] | None = None) -> bool:
    settings = settings or get_email_settings()
    message = Message(subject=subject, recipients=recipients, html=html, sender=_sender(settings))
    try:
        _deliver(message)
    except (SMTPException, OSError) as exc:
        current_app.logger.error("Giving up on email %r to %s: %s", subject, recipients, exc)
        return False
    current_app.logger.info("Sent email %r to %s", subject, recipients)
    return True


def _booking_context(booking: Booking, item, language: str, settings: dict[str, str]) -> dict[str, object]:
    return {
        "booking": booking,
        "item": item,
        "item_label": "tour" if booking.type == "tour" else "service",
        "amount": format_amount(booking.total_amount, booking.currency),
        "settings": settings,
        "t": TRANSLATIONS.get(language, TRANSLATIONS["en"]),
    }


def _booking_variables(booking: Booking, item, settings: dict[str, str]) -> dict[str, object]:
    return {
        "booking_number": booking.booking_number,
        "customer_name": booking.customer_name,
        "customer_email": booking.customer_email,
        "customer_phone": booking.customer_phone,
        "item_title": item.title,
        "item_type": booking.type,
        "start_date": booking.start_date.isoformat() if booking.start_date else "",
        "total_travelers": booking.total_travelers,
        "total_amount": booking.total_amount,
        "currency": booking.currency,
        "special_requests": booking.special_requests or "None",
        "company_name": settings["company_name"],
    }


def send_admin_booking_notification(booking: Booking, item, language: str = "en") -> bool:
    settings = get_email_settings()
    if settings.get("booking_notification_enabled") != "true":
        current_app.logger.info("Admin booking notifications are disabled")
        return False

    subject = fill_template(settings["admin_notification_subject"], _booking_variables(booking, item, settings))
    html = render_template("email/admin_booking.html", **_booking_context(booking, item, language, settings))
    return send_email(subject, [settings["company_email"]], html, settings)


def send_customer_confirmation(booking: Booking, item, language: str = "en") -> bool:
    settings = get_email_settings()
    if settings.get("customer_confirmation_enabled") != "true":
        current_app.logger.info("Customer confirmation emails are disabled")
        return False

    subject = fill_template(settings["customer_confirmation_subject"], _booking_variables(booking, item, settings))
    html = render_template("email/customer_confirmation.html", **_booking_context(booking, item, language, settings))
    return send_email(subject, [booking.customer_email], html, settings)


def send_booking_status_update(booking: Booking, item, status: str, notes: str | None = None) -> bool:
    settings = get_email_settings()
    if settings.get("customer_confirmation_enabled") != "true":
        current_app.logger.info("Customer emails are disabled, skipping status update for %s", booking.booking_number)
        return False

    style = STATUS_STYLES.get(status, {
        "title": "Booking Update",
        "message": f"Your booking status has been updated to: {status}",
        "color": "#6b7280",
        "bg_color": "#f9fafb",
    })
    html = render_template(
        "email/status_update.html",
        booking=booking,
        item=item,
        status=status,
        style=style,
        notes=notes,
        settings=settings,
    )
    return send_email(f"Booking Update - {booking.booking_number}", [booking.customer_email], html, settings)


def send_admin_invitation(user: User, password: str) -> bool:
    settings = get_email_settings()
    html = render_template(
        "email/admin_credentials.html",
        user=user,
        password=password,
        settings=settings,
        login_url=f"{current_app.config['FRONTEND_URL'].rstrip('/')}/admin/login",
        invitation=True,
    )
    return send_email(f"Admin Access Granted - {settings['company_name']}", [user.email], html, settings)


def send_admin_password_reset(user: User, password: str) -> bool:
    settings = get_email_settings()
    html = render_template(
        "email/admin_credentials.html",
        user=user,
        password=password,
        settings=settings,
        login_url=f"{current_app.config['FRONTEND_URL'].rstrip('/')}/admin/login",
        invitation=False,
    )
    return send_email(f"Password Reset - {settings['company_name']}", [user.email], html, settings)


def send_forgot_password(user: User, reset_url: str) -> bool:
    settings = get_email_settings()
    html = render_template(
        "email/forgot_password.html",
        user=user,
        reset_url=reset_url,
        ttl_minutes=current_app.config["PASSWORD_RESET_TTL_MINUTES"],
        settings=settings,
    )
    return send_email(f"Reset your password - {settings['company_name']}", [user.email], html, settings)


def send_test_email(recipient: str) -> None:
    """Send the settings test message. Unlike the other senders this one raises."""
    settings = get_email_settings()
    html = render_template("email/test_email.html", settings=settings)
    message = Message(
        subject=f"Email Configuration Test - {settings['company_name']}",
        recipients=[recipient],
        html=html,
        sender=_sender(settings),
    )
    _deliver(message)
    current_app.logger.info("Sent test email to %s", recipient)
