# core/email_templates.py
"""
Email templates for the contact mailer
Every value submitted through the form is autoescaped before it lands in HTML.
"""

import re
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from jinja2 import DictLoader, Environment, StrictUndefined, select_autoescape
from jinja2.exceptions import TemplateError
from markupsafe import Markup, escape
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

HEADER_GRADIENT = "background: linear-gradient(90deg, #ec4899 0%, #8b5cf6 100%); color: white;"

TEMPLATES = {
    'support_notification.html': """
<div style="font-family: Arial, sans-serif; max-width: 700px; margin: 0 auto;">
    <div style="{{ gradient }} padding: 30px; text-align: center; border-radius: 10px 10px 0 0;">
        <h1 style="margin: 0;">New Contact Form Submission</h1>
        <p>{{ brand }} Website</p>
    </div>
    <div style="padding: 30px; background: #f8fafc;">
        <div style="background: white; padding: 20px; border-radius: 10px; margin-bottom: 20px;">
            <h2 style="color: #8b5cf6; margin-top: 0;">Client Information</h2>
            <p><strong>Name:</strong> {{ name }}</p>
            <p><strong>Email:</strong> {{ email }}</p>
            <p><strong>Phone:</strong> {{ phone or 'Not provided' }}</p>
            <p><strong>Service:</strong> {{ service }}</p>
            <p><strong>Reference:</strong> {{ reference }}</p>
        </div>
        <div style="background: white; padding: 20px; border-radius: 10px;">
            <h3 style="color: #8b5cf6; margin-top: 0;">Message</h3>
            <p>{{ message | nl2br }}</p>
        </div>
    </div>
    <div style="background: #1f2937; color: #9ca3af; padding: 20px; text-align: center; border-radius: 0 0 10px 10px;">
        <p>Submitted: {{ submitted_at }}</p>
    </div>
</div>
""",
    'auto_reply.html': """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
    <div style="{{ gradient }} padding: 40px; text-align: center;">
        <h1 style="margin: 0;">Thank You, {{ name }}!</h1>
        <p>Your inquiry has been received</p>
    </div>
    <div style="padding: 30px;">
        <p>Dear {{ name }},</p>
        <p>Thank you for contacting {{ brand }} regarding our {{ service }} service.</p>

        <div style="background: #f0fdf4; padding: 15px; border-radius: 8px; margin: 20px 0;">
            <h3 style="color: #065f46; margin-top: 0;">What Happens Next?</h3>
            <p>&bull; Our team will review your requirements</p>
            <p>&bull; You'll receive a detailed proposal within <strong>24-48 hours</strong></p>
            <p>&bull; We'll contact you at {{ phone or 'your email' }}</p>
        </div>

        <p><strong>Reference:</strong> {{ reference }}</p>
        {% if whatsapp_url %}
        <div style="text-align: center; margin: 30px 0;">
            <a href="{{ whatsapp_url }}" style="background: #25D366; color: white; padding: 12px 25px; text-decoration: none; border-radius: 8px; display: inline-block;">Chat on WhatsApp for Fast Response</a>
        </div>
        {% endif %}
    </div>
    <div style="background: #f8fafc; padding: 20px; text-align: center; color: #6b7280;">
        <p>{{ brand }} | {{ support_email }} | {{ support_phone }}</p>
    </div>
</div>
""",
    'server_test.html': """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="{{ gradient }} padding: 30px; border-radius: 10px; text-align: center;">
        <h1 style="margin: 0;">Test Email Successful</h1>
        <p>{{ service_name }}</p>
    </div>
    <div style="padding: 20px; background: #f8fafc; border-radius: 10px; margin-top: 20px;">
        <p>Your email server is working correctly!</p>
        <p><strong>Time:</strong> {{ sent_at }}</p>
        <p><strong>Email:</strong> {{ email }}</p>
    </div>
</div>
""",
    'server_test.txt': """Test email from {{ service_name }}

Time: {{ sent_at }}
""",
    'simple_contact.html': """
<h2>New Contact Form Submission</h2>
<p><strong>Name:</strong> {{ name }}</p>
<p><strong>Email:</strong> {{ email }}</p>
<p><strong>Phone:</strong> {{ phone or 'N/A' }}</p>
<p><strong>Service:</strong> {{ service }}</p>
<p><strong>Message:</strong> {{ message | nl2br }}</p>
<p><em>Time: {{ sent_at }}</em></p>
""",
    'simple_contact.txt': """Name: {{ name }}
Email: {{ email }}
Phone: {{ phone or 'N/A' }}
Service: {{ service }}
Message: {{ message }}
""",
}


@dataclass
class RenderedEmail:
    html: str
    text: str


def nl2br(value: Any) -> Markup:
    """Escape a value and turn its line breaks into <br> tags"""
    if value is None:
        return Markup('')
    if not isinstance(value, str):
        value = str(value)
    return Markup('<br>').join(escape(line) for line in value.splitlines())


def html_to_text(html_content: str) -> str:
    """Plain-text alternative for an HTML body"""
    if not html_content:
        return ""

    soup = BeautifulSoup(html_content, 'html.parser')

    for br in soup.find_all('br'):
        br.replace_with('\n')

    for p in soup.find_all('p'):
        p.insert_after('\n')

    for header in soup.find_all(['h1', 'h2', 'h3']):
        header.insert_before('\n')
        header.insert_after('\n')

    for link in soup.find_all('a', href=True):
        link_text = link.get_text().strip()
        href = link['href']
        if href != link_text:
            link.replace_with(f"{link_text} ({href})")

    text = soup.get_text()
    text = re.sub(r'[ \t]+', ' ', text)
    text = re.sub(r'\n\s*\n+', '\n\n', text)
    return '\n'.join(line.strip() for line in text.strip().splitlines())


class EmailTemplateRenderer:
    """Renders the HTML and text parts of every outgoing contact email"""

    def __init__(self, defaults: Optional[Dict[str, Any]] = None):
        self.env = Environment(
            loader=DictLoader(TEMPLATES),
            autoescape=select_autoescape(['html', 'xml']),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters['nl2br'] = nl2br
        self.defaults = {'gradient': HEADER_GRADIENT}
        self.defaults.update(defaults or {})

    def render(self, template_name: str, /, **context) -> RenderedEmail:
        """
        Render `<template_name>.html`, and `<template_name>.txt` when it exists

        Templates without a text variant get one derived from the HTML.
        """
        variables = dict(self.defaults, **context)
        try:
            html = self.env.get_template(f"{template_name}.html").render(**variables)
            if f"{template_name}.txt" in TEMPLATES:
                text = self.env.get_template(f"{template_name}.txt").render(**variables)
            else:
                text = html_to_text(html)
        except TemplateError as e:
            logger.error(f"Template {template_name} failed to render: {e}")
            raise

        return RenderedEmail(html=html.strip(), text=text.strip())
