# frontend/funnel_dashboard/templating.py
import re

TOKEN_PATTERN = re.compile(r'\{\{(\w+)\}\}')

SAMPLE_VALUES = {"firstName": "John"}

EMAIL_TEMPLATES = {
    "welcome": """Hi {{firstName}},

Welcome aboard! 🚀

We're thrilled to have you join our community.

Over the coming weeks, you'll receive:
- Practical implementation strategies
- Real-world case studies
- Tools and resources to get started
- Insights on upcoming trends

If you have any questions, just reply to this email.

Best regards,
The Team""",
    "newsletter": """Hi {{firstName}},

This week's highlights...

[Your newsletter content here]

Best regards,
The Team""",
    "announcement": """Hi {{firstName}},

We have an important update to share with you...

[Your announcement here]

Best regards,
The Team""",
}


def render_template(template: str, values: dict) -> str:
    """
    Replaces {{name}} tokens in one pass. Tokens with no value (or an empty
    one) are left as they are; substituted text is never re-scanned.
    """
    def substitute(match):
        value = values.get(match.group(1))
        return str(value) if value not in (None, "") else match.group(0)

    return TOKEN_PATTERN.sub(substitute, template or "")


def template_choices() -> list[str]:
    return list(EMAIL_TEMPLATES) + ["custom"]
