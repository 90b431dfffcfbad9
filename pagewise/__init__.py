"""Pagewise: locate article content in HTML pages and translate it into easier language."""

from .controller import PageTranslator
from .document import HtmlDocument
from .session import Session, SessionContext

__all__ = ["HtmlDocument", "PageTranslator", "Session", "SessionContext"]
