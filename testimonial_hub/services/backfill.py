"""One-off backfill of legacy string owner references to typed user ids."""

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from testimonial_hub.models.testimonial import Testimonial
from testimonial_hub.models.user import User

logger = logging.getLogger(__name__)


@dataclass
class BackfillResult:
    """Outcome of a backfill run."""

    migrated: int = 0
    skipped: int = 0


def _resolve_reference(db: Session, reference: str) -> User | None:
    reference = reference.strip()
    if reference.isdigit():
        return db.query(User).filter(User.id == int(reference)).first()
    if "@" in reference:
        return db.query(User).filter(User.email == reference).first()
    return None


def backfill_user_references(db: Session, batch_size: int = 500) -> BackfillResult:
    """Resolve ``legacy_user_ref`` strings into the typed ``user_id`` foreign key.

    A reference may be a numeric user id or an email address. Migrated rows have
    their legacy reference cleared, so running the backfill again is a no-op.
    Unresolvable references are logged and left in place for manual review.
    """
    result = BackfillResult()
    pending = (
        db.query(Testimonial)
        .filter(Testimonial.user_id.is_(None), Testimonial.legacy_user_ref.isnot(None))
        .order_by(Testimonial.id)
        .all()
    )

    for index, testimonial in enumerate(pending, start=1):
        user = _resolve_reference(db, testimonial.legacy_user_ref)
        if user is None:
            logger.warning(
                "Cannot resolve owner %r of testimonial %s",
                testimonial.legacy_user_ref,
                testimonial.id,
            )
            result.skipped += 1
            continue

        logger.info("Migrating testimonial %s to user %s", testimonial.id, user.id)
        testimonial.user_id = user.id
        testimonial.legacy_user_ref = None
        result.migrated += 1

        if index % batch_size == 0:
            db.commit()

    db.commit()
    logger.info("Backfill complete: %d migrated, %d skipped", result.migrated, result.skipped)
    return result
