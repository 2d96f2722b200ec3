import logging
from fastapi import APIRouter

from errors import CatalogError
from serializers.common import MessageResponse
from serializers.contact import ContactForm
from services import mailer

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post('/contact', response_model=MessageResponse)
def send_contact(form: ContactForm):
    """
    Forward a visit request from the storefront to the shop's inbox.
    """
    try:
        mailer.send_contact_email(form)
    except OSError as exc:
        # smtplib errors are OSError subclasses
        logger.exception("Sending contact email failed")
        raise CatalogError("The email could not be sent") from exc
    return {"ok": True, "message": "Message sent"}
