"""
MJML Email Templates
Bilingual (Arabic / English) templates compiled with MJML for cross-client compatibility
"""

from html import escape
from typing import Optional

# App theme colors - Blue/Slate color scheme
THEME = {
    "primary": "#2563eb",
    "primary_dark": "#1d4ed8",
    "background": "#f6f9fc",
    "card_bg": "#ffffff",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
}

SUPPORT_EMAIL = "support@dentalpro.com"

USER_TYPE_LABELS = {
    "dentist": ("طبيب أسنان", "Dentist"),
    "supplier": ("مورد", "Supplier"),
    "admin": ("مدير", "Administrator"),
    "assistant": ("مساعد", "Assistant"),
    "receptionist": ("موظف استقبال", "Receptionist"),
}
DEFAULT_USER_TYPE_LABEL = ("مستخدم", "User")

CLINIC_FEATURES = (
    [
        "إدارة المرضى والمواعيد",
        "تسجيل العلاجات والفحوصات",
        "إدارة الفواتير والمدفوعات",
        "طلب المستلزمات الطبية",
        "تصدير التقارير والإحصائيات",
    ],
    [
        "Manage patients and appointments",
        "Record treatments and examinations",
        "Handle billing and payments",
        "Order medical supplies",
        "Export reports and statistics",
    ],
)

SUPPLIER_FEATURES = (
    [
        "إدارة المنتجات والمخزون",
        "استقبال ومعالجة الطلبات",
        "متابعة المدفوعات والفواتير",
        "التواصل مع العيادات السنية",
        "تحليل المبيعات والتقارير",
    ],
    [
        "Manage products and inventory",
        "Receive and process orders",
        "Track payments and invoices",
        "Communicate with dental clinics",
        "Analyze sales and reports",
    ],
)


def user_type_labels(user_type: Optional[str]) -> tuple[str, str]:
    """(Arabic, English) label for a user role"""
    return USER_TYPE_LABELS.get(user_type or "", DEFAULT_USER_TYPE_LABEL)


def get_base_template(title: str, preview_text: str, content_sections: str) -> str:
    """Base MJML template wrapper for all emails"""
    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Ubuntu, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        {content_sections}

        <!-- Footer -->
        <mj-section background-color="{THEME['card_bg']}" padding="0 48px 48px 48px">
          <mj-column>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="0 0 24px 0" />
            <mj-text align="center" font-size="14px" color="{THEME['text_muted']}">
              إذا كان لديك أي أسئلة، لا تتردد في التواصل معنا.<br/>
              If you have any questions, don't hesitate to contact us.<br/>
              <a href="mailto:{SUPPORT_EMAIL}" style="color: {THEME['primary']};">{SUPPORT_EMAIL}</a>
            </mj-text>
            <mj-text align="center" font-size="12px" color="#94a3b8">
              دنتال برو - نظام إدارة العيادات السنية<br/>
              Dental Pro - Dental Clinic Management System
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _language_section(
    direction: str,
    heading: str,
    paragraphs: list[str],
    button_url: str,
    button_label: str,
    features_title: str,
    features: list[str],
) -> str:
    align = "right" if direction == "rtl" else "left"
    body = "\n".join(
        f'<mj-text align="{align}" css-class="{direction}">{p}</mj-text>' for p in paragraphs
    )
    feature_lines = "<br/>".join(f"• {item}" for item in features)
    return f"""
        <mj-section background-color="{THEME['card_bg']}" padding="32px 48px 16px 48px" direction="{direction}">
          <mj-column>
            <mj-text align="center" font-size="24px" font-weight="bold" color="{THEME['text_primary']}">
              {heading}
            </mj-text>
            {body}
            <mj-button href="{button_url}" background-color="{THEME['primary']}" color="#ffffff"
              border-radius="6px" padding="16px 0" font-weight="600">
              {button_label}
            </mj-button>
            <mj-text align="{align}"><strong>{features_title}</strong></mj-text>
            <mj-text align="{align}">{feature_lines}</mj-text>
          </mj-column>
        </mj-section>
    """


def welcome_email_template(first_name: str, user_type: str, confirmation_url: str) -> str:
    """Welcome email with account activation link, Arabic first"""
    name = escape(first_name)
    url = escape(confirmation_url, quote=True)
    role_ar, role_en = user_type_labels(user_type)
    features_ar, features_en = SUPPLIER_FEATURES if user_type == "supplier" else CLINIC_FEATURES

    arabic = _language_section(
        "rtl",
        "مرحباً بك في دنتال برو! 🦷",
        [
            f"عزيزي/عزيزتي {name}،",
            "مرحباً بك في منصة دنتال برو، النظام الشامل لإدارة العيادات السنية ومستلزماتها الطبية.",
            f"تم تسجيلك بنجاح كـ <strong>{role_ar}</strong> في نظامنا.",
            "لتفعيل حسابك والبدء في استخدام النظام، يرجى النقر على الرابط أدناه:",
        ],
        url,
        "تفعيل الحساب الآن",
        "ما يمكنك فعله في دنتال برو:",
        features_ar,
    )
    english = _language_section(
        "ltr",
        "Welcome to Dental Pro! 🦷",
        [
            f"Dear {name},",
            "Welcome to Dental Pro, the comprehensive platform for dental clinic management and medical supplies.",
            f"You have been successfully registered as a <strong>{role_en}</strong> in our system.",
            "To activate your account and start using the system, please click the link below:",
        ],
        url,
        "Activate Account Now",
        "What you can do with Dental Pro:",
        features_en,
    )

    divider = f"""
        <mj-section background-color="{THEME['card_bg']}" padding="0 48px">
          <mj-column>
            <mj-divider border-color="{THEME['border']}" border-width="1px" />
          </mj-column>
        </mj-section>
    """

    return get_base_template(
        title="مرحباً بك في دنتال برو - Welcome to Dental Pro",
        preview_text="مرحباً بك في دنتال برو - Welcome to Dental Pro",
        content_sections=arabic + divider + english,
    )
