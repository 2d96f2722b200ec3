import html
import logging
import smtplib
from email.message import EmailMessage

from config.environment import settings
from serializers.contact import ContactForm

logger = logging.getLogger(__name__)

SUBJECT = "Nueva solicitud de visita - Sitio"


def render_contact(form: ContactForm):
    """Plain-text and HTML bodies for a contact request."""
    rows = [
        ("Nombre", form.nombre),
        ("Email", form.email),
        ("Teléfono", form.telefono),
        ("Fecha preferida", form.fecha),
        ("¿Cómo nos conoció?", form.origen),
        ("Mensaje", form.mensaje),
    ]
    rows = [(label, value) for label, value in rows if value]

    text = "\n".join(["Nueva solicitud de visita"] + [f"{label}: {value}" for label, value in rows])
    body = "".join(f"<p><b>{html.escape(label)}:</b> {html.escape(str(value))}</p>" for label, value in rows)
    html_body = f"<h2>Nueva solicitud de visita</h2>{body}<hr><small>Enviado desde el formulario web.</small>"
    return text, html_body


def send_contact_email(form: ContactForm):
    text, html_body = render_contact(form)

    message = EmailMessage()
    message["Subject"] = SUBJECT
    message["From"] = settings.mail_from
    message["To"] = settings.mail_to
    message["Reply-To"] = form.email
    message.set_content(text)
    message.add_alternative(html_body, subtype="html")

    if settings.smtp_port == 465:
        server = smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, timeout=10)
    else:
        server = smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10)
    with server:
        if settings.smtp_port != 465:
            server.starttls()
        if settings.smtp_user:
            server.login(settings.smtp_user, settings.smtp_password)
        server.send_message(message)
    logger.info("Contact request from %s sent", form.email)
