# Overview: Atomic per-tenant document numbering for sales and purchase orders.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence


SALES_ORDER = "SALES_ORDER"
PURCHASE_ORDER = "PURCHASE_ORDER"

PREFIXES = {
    SALES_ORDER: "SO",
    PURCHASE_ORDER: "PO",
}


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def _current_next(tenant_id: int, document_type: str) -> int:
    return (
        db.session.query(DocumentSequence.next_number)
        .filter_by(tenant_id=tenant_id, document_type=document_type)
        .scalar()
    )


def next_document_number(
    *,
    tenant_id: int,
    document_type: str,
    pad: int = 4,
) -> str:
    """
    Allocate the next document number for a tenant/type, e.g. "SO-007-0042".

    Runs inside the caller's transaction (no commit, no retry of its own):
    the number is only consumed if the surrounding document commits.
    The counter row is bumped with a single UPDATE; the first allocation
    inserts it inside a SAVEPOINT so a concurrent first insert can be
    recovered from without discarding the caller's work.
    """
    if not tenant_id:
        raise DocumentSequenceError("tenant_id is required")
    prefix = PREFIXES.get(document_type)
    if not prefix:
        raise DocumentSequenceError(f"Unknown document_type: {document_type}")

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.tenant_id == tenant_id,
            DocumentSequence.document_type == document_type,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        next_num = _current_next(tenant_id, document_type) - 1
    else:
        try:
            with db.session.begin_nested():
                db.session.add(
                    DocumentSequence(tenant_id=tenant_id, document_type=document_type, next_number=2)
                )
            next_num = 1
        except IntegrityError:
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
            next_num = _current_next(tenant_id, document_type) - 1

    return f"{prefix}-{tenant_id:03d}-{next_num:0{pad}d}"
