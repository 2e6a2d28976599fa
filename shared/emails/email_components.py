from jinja2 import Environment, BaseLoader, select_autoescape
from markupsafe import Markup
from premailer import transform

from shared import shared_settings

# Initialize Jinja2 environment for consistent template rendering
env = Environment(loader=BaseLoader(), autoescape=select_autoescape(default_for_string=True))

BASE_EMAIL_TEMPLATE = """
<html>
<head>
    <style>
        body { font-family: Arial, sans-serif; line-height: 1.6; color: #2d3748; margin: 0; padding: 0; background-color: #f7fafc; }
        .container { max-width: 600px; margin: 20px auto; background: #ffffff; border: 1px solid #e2e8f0; border-radius: 4px; overflow: hidden; }
        .content { padding: 30px; }
        h1 { color: #1a365d; font-size: 22px; text-align: center; margin-top: 0; margin-bottom: 20px; }
        p { margin: 0 0 15px; font-size: 15px; }
        .highlight-box { background-color: #ebf8ff; border-left: 4px solid #4299e1; padding: 15px; margin: 20px 0; }
        .button { background-color: #4299e1; color: white; padding: 12px 20px; text-decoration: none; border-radius: 4px; display: inline-block; margin: 15px 0; font-weight: bold; }
        .footer { padding: 15px; text-align: center; font-size: 12px; color: #718096; background-color: #edf2f7; }
        .signature { margin-top: 30px; text-align: center; }
        .signature p { margin: 5px 0; }
    </style>
</head>
<body>
    <div class="container">
        <div class="content">
            <h1>{{ title }}</h1>
            {{ content }}
            <div class="signature">
                <p>Best Regards,</p>
                <p><strong>The {{ app_name }} Team</strong></p>
                {% if logo_url %}<p><img src="{{ logo_url }}" alt="{{ app_name }}" width="120"></p>{% endif %}
            </div>
        </div>
        <div class="footer">
            This is an automated message. Please do not reply directly to this email.
        </div>
    </div>
</body>
</html>
"""


def _render_template(template_str: str, **kwargs) -> str:
    """Render a Jinja2 template with error handling and CSS inlining."""
    try:
        template = env.from_string(template_str)
        rendered = template.render(**kwargs)
        return transform(rendered)  # Inline CSS for email compatibility
    except Exception as e:
        raise ValueError(f"Failed to render email template: {str(e)}") from e


def base_email_template(title: str, content_template: str, **kwargs) -> str:
    """Render ``content_template`` with ``kwargs`` and wrap it in the shared layout."""
    content = env.from_string(content_template).render(**kwargs)
    return _render_template(
        BASE_EMAIL_TEMPLATE,
        title=title,
        content=Markup(content),
        app_name=shared_settings.APP_NAME,
        logo_url=shared_settings.LOGO_URL,
    )
