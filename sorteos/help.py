"""
Help center content: FAQ entries, support channels and the FAQ search.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from sorteos.domain import text_matches


@dataclass(frozen=True)
class FaqItem:
    question: str
    answer: str

    @property
    def slug(self) -> str:
        """Anchor id used by the accordion; accented letters split words ("c-mo-puedo-...")."""
        return "-".join(re.findall(r"[a-z0-9]+", self.question.lower()))


@dataclass(frozen=True)
class SupportChannel:
    title: str
    description: str
    href: str
    label: str
    icon: str


FAQS: tuple[FaqItem, ...] = (
    FaqItem(
        question="¿Cómo puedo iniciar sesión?",
        answer=(
            "Haz clic en el botón 'Iniciar sesión' en la parte superior derecha. Ingresa tu correo y "
            "contraseña para acceder a tu cuenta. Si olvidaste tu contraseña, utiliza la opción de "
            "recuperación. Si aún no tienes una cuenta, regístrate gratis."
        ),
    ),
    FaqItem(
        question="¿Que pasa si olvido mi contraseña?",
        answer=(
            "Puedes hacer clic en 'Olvidé mi contraseña' en la pantalla de inicio de sesión. Se te "
            "enviará un correo electrónico con instrucciones para restablecerla."
        ),
    ),
    FaqItem(
        question="¿Cómo puedo crear una cuenta?",
        answer=(
            "Haz clic en 'Registrarse' en la pantalla de inicio de sesión. Completa el formulario con tu "
            "información y sigue las instrucciones para verificar tu correo electrónico."
        ),
    ),
    FaqItem(
        question="¿Cómo garantizan la transparencia del sorteo?",
        answer=(
            "Cada sorteo se ejecuta con un algoritmo auditado y almacenamos el acta firmada. Apenas sean "
            "publicados los resultados en nuestras redes sociales, la página se refresca con los datos "
            "oficiales."
        ),
    ),
    FaqItem(
        question="¿Que pasa si gano?",
        answer=(
            "Si ganas, recibirás un correo electrónico con la confirmación de tu premio y los siguientes "
            "pasos a seguir. Asegúrate de revisar tu bandeja de entrada y seguir las instrucciones "
            "proporcionadas."
        ),
    ),
    FaqItem(
        question="¿Puedo participar en múltiples sorteos?",
        answer=(
            "Sí, puedes participar en tantos sorteos como desees, siempre y cuando cumplas con los "
            "requisitos específicos de cada uno."
        ),
    ),
)

SUPPORT_CHANNELS: tuple[SupportChannel, ...] = (
    SupportChannel(
        title="Redes sociales",
        description=(
            "Resolvemos dudas y compartimos novedades en Instagram. Envíanos un mensaje directo para "
            "una respuesta rápida."
        ),
        href="https://www.instagram.com/tusuerte",
        label="Abrir Instagram",
        icon="🌐",
    ),
    SupportChannel(
        title="Línea telefónica",
        description="Atención humana de lunes a viernes de 9h00 a 18h00. Marca y te guiaremos paso a paso.",
        href="tel:+593963924479",
        label="Llamar al soporte",
        icon="📞",
    ),
    SupportChannel(
        title="Correo electrónico",
        description=(
            "Para casos detallados o seguimiento de premios, escríbenos y te responderemos en menos "
            "de 24 horas."
        ),
        href="mailto:soporte@tusuerte.com",
        label="Enviar correo",
        icon="✉️",
    ),
)


def search_faqs(query: str | None, faqs: tuple[FaqItem, ...] = FAQS) -> list[FaqItem]:
    """FAQ entries whose question or answer contains query (case-insensitive)."""
    return [faq for faq in faqs if text_matches(query, faq.question, faq.answer)]
