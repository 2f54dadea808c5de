"""Knowledge resolution for a chat request.

Order of sources for a language: cached site snapshot, then curated FAQs.
If both are empty the built-in fallback table is used.
"""

from __future__ import annotations

import logging

from multichat.db.models import Chunk
from multichat.db.repository import FaqRepository
from multichat.ingest.builder import KnowledgeBaseBuilder
from multichat.rag import retriever

logger = logging.getLogger(__name__)

# (question, answer) pairs per language.
FALLBACK_KNOWLEDGE: dict[str, list[tuple[str, str]]] = {
    "en": [
        ("What are your business hours?",
         "Our business hours are Monday to Friday, 9 AM to 6 PM EST."),
        ("How can I contact customer support?",
         "You can contact us via email at support@example.com or phone at 1-800-EXAMPLE."),
        ("What is your return policy?",
         "We offer a 30-day money-back guarantee on all products."),
        ("Do you ship internationally?",
         "Yes, we ship to over 150 countries worldwide."),
        ("What payment methods do you accept?",
         "We accept all major credit cards, PayPal, and bank transfers."),
    ],
    "ar": [
        ("ما هي ساعات العمل لديكم؟",
         "ساعات عملنا من الاثنين إلى الجمعة، من الساعة 9 صباحًا إلى الساعة 6 مساءً بتوقيت EST."),
        ("كيف يمكنني التواصل مع خدمة العملاء؟",
         "يمكنك التواصل معنا عبر البريد الإلكتروني support@example.com أو الهاتف 1-800-EXAMPLE."),
        ("ما هي سياسة الإرجاع؟",
         "نقدم ضمان استرجاع الأموال لمدة 30 يومًا على جميع المنتجات."),
        ("هل تقومون بالشحن الدولي؟",
         "نعم، نشحن إلى أكثر من 150 دولة في جميع أنحاء العالم."),
        ("ما هي طرق الدفع التي تقبلونها؟",
         "نقبل جميع بطاقات الائتمان الرئيسية و PayPal والتحويلات البنكية."),
    ],
    "es": [
        ("¿Cuál es su horario de atención?",
         "Nuestro horario es de lunes a viernes, de 9 a.m. a 6 p.m. EST."),
        ("¿Cómo puedo contactar al servicio al cliente?",
         "Puede contactarnos por correo electrónico a support@example.com o por teléfono al 1-800-EXAMPLE."),
        ("¿Cuál es su política de devoluciones?",
         "Ofrecemos una garantía de devolución de dinero de 30 días en todos los productos."),
        ("¿Envían a nivel internacional?",
         "Sí, enviamos a más de 150 países en todo el mundo."),
        ("¿Qué métodos de pago aceptan?",
         "Aceptamos todas las tarjetas de crédito principales, PayPal y transferencias bancarias."),
    ],
    "fr": [
        ("Quels sont vos horaires de travail?",
         "Nos horaires sont du lundi au vendredi, de 9h à 18h EST."),
        ("Comment puis-je contacter le service clientèle?",
         "Vous pouvez nous contacter par email à support@example.com ou par téléphone au 1-800-EXAMPLE."),
        ("Quelle est votre politique de retour?",
         "Nous offrons une garantie de remboursement de 30 jours sur tous les produits."),
        ("Livrez-vous à l'international?",
         "Oui, nous livrons dans plus de 150 pays dans le monde."),
        ("Quels modes de paiement acceptez-vous?",
         "Nous acceptons toutes les principales cartes de crédit, PayPal et les virements bancaires."),
    ],
}


def fallback_chunks(language: str) -> list[Chunk]:
    """Built-in knowledge for *language* (English if the language has none)."""
    pairs = FALLBACK_KNOWLEDGE.get(language, FALLBACK_KNOWLEDGE["en"])
    return [Chunk.create(answer, title=question) for question, answer in pairs]


class KnowledgeResolver:
    """Collects candidate chunks for a language and ranks them against a message."""

    def __init__(
        self,
        builder: KnowledgeBaseBuilder,
        faqs: FaqRepository | None = None,
        *,
        top_n: int = retriever.DEFAULT_TOP_N,
    ) -> None:
        self.builder = builder
        self.faqs = faqs
        self.top_n = top_n

    def candidates(self, language: str) -> list[Chunk]:
        chunks: list[Chunk] = []
        snapshot = self.builder.get_from_cache(language)
        if snapshot is not None:
            chunks.extend(snapshot.chunks)
        if self.faqs is not None:
            for faq in self.faqs.list(language):
                chunks.extend(
                    self.builder.chunker.chunk(faq.content, source_url=faq.url, title=faq.title)
                )
        if not chunks:
            logger.debug("No knowledge base for '%s', using fallback knowledge", language)
            return fallback_chunks(language)
        return chunks

    def resolve(self, message: str, language: str) -> list[Chunk]:
        """Return the top-ranked chunks for *message* in *language*."""
        return retriever.rank(message, self.candidates(language), self.top_n)
