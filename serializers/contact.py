from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class ContactForm(BaseModel):
    """Visit request sent from the storefront contact page"""
    nombre: str = Field(..., min_length=2, max_length=80)
    email: EmailStr
    telefono: str = Field(..., min_length=5, max_length=30)
    fecha: Optional[str] = None
    origen: Optional[str] = None
    mensaje: Optional[str] = Field(None, max_length=1000)
