from typing import List
import fitz
from util.timing import timed
import logging

logger = logging.getLogger(__name__)

PAGE_SEPARATOR = "\n\n"


def page_texts(data: bytes) -> List[str]:
    """
    Plain text of every page, in order. Unreadable or password-protected
    documents give [] and the caller rejects them as having no content.
    """
    if not data:
        return []
    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            if doc.needs_pass:
                logger.warning("pdf.encrypted pages=%d", doc.page_count)
                return []
            with timed(logger, "pdf.parse", pages=doc.page_count) as fields:
                texts = [page.get_text("text") or "" for page in doc]
                fields["chars"] = sum(len(t) for t in texts)
    except Exception:
        # bytes count only, never the payload
        logger.error("pdf.parse.error bytes=%d", len(data), exc_info=True)
        return []
    return texts


def extract_text(data: bytes) -> str:
    """
    Whole-document text, pages joined by a blank line. Page boundaries are
    not carried further; chunk pages are estimated from offsets.
    """
    return PAGE_SEPARATOR.join(page_texts(data))
