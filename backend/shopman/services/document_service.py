# Overview: Service-layer operations for document numbering; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence


SALE = "SALE"
RETURN = "RET"
PURCHASE_ORDER = "PO"


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def _current_next(document_type: str) -> int:
    return (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type)
        .scalar()
    )


def next_document_number(*, document_type: str, pad: int = 6) -> str:
    """
    Allocate the next document number for a type, e.g. "SALE-000001".

    The sequence row is incremented with a single UPDATE so concurrent
    allocations serialize on that row. Must be the first write of the
    caller's transaction: the first-ever allocation for a type may need to
    roll back a lost insert race.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        next_num = _current_next(document_type) - 1
    else:
        db.session.add(DocumentSequence(document_type=document_type, next_number=2))
        try:
            db.session.flush()
            next_num = 1
        except IntegrityError:
            db.session.rollback()
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
            next_num = _current_next(document_type) - 1

    return f"{document_type}-{next_num:0{pad}d}"
