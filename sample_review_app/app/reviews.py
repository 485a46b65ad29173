import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .errors import NotFound, PersistenceError, ReferencedSampleMissing, ValidationError
from .models import REVIEW_FIELD_MAX_LENGTH, REVIEW_FIELDS, ReviewedSample, Sample

logger = logging.getLogger(__name__)

POSTGRES_FOREIGN_KEY_VIOLATION = '23503'
MYSQL_FOREIGN_KEY_ERRORS = (1216, 1452)


def clean_review_fields(payload):
    """Validate a review request body and map it onto column names.

    Every field in ``REVIEW_FIELDS`` is a required, non-blank string of at
    most ``REVIEW_FIELD_MAX_LENGTH`` characters.
    """
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')

    fields = {}
    problems = []
    for key, column in REVIEW_FIELDS:
        value = payload.get(key)
        if not isinstance(value, str) or not value.strip():
            problems.append(f'{key} is required')
        elif len(value) > REVIEW_FIELD_MAX_LENGTH:
            problems.append(f'{key} must be at most {REVIEW_FIELD_MAX_LENGTH} characters')
        else:
            fields[column] = value
    if problems:
        raise ValidationError(f"Invalid review: {'; '.join(problems)}")
    return fields


def is_foreign_key_violation(error):
    orig = getattr(error, 'orig', None)
    if getattr(orig, 'pgcode', None) == POSTGRES_FOREIGN_KEY_VIOLATION:
        return True
    args = getattr(orig, 'args', ())
    if args and args[0] in MYSQL_FOREIGN_KEY_ERRORS:
        return True
    return 'FOREIGN KEY' in str(orig).upper()


class ReviewUpsertEngine(object):
    """Creates or updates the single review row attached to a sample.

    Each submission runs in its own session, checked out from the engine's
    pool for the length of one transaction and closed on every exit path.
    The sample row and any existing review row are read ``FOR UPDATE``, so
    two submissions for the same sample run one after the other: the second
    sees the row the first inserted and updates it.

    SQLite ignores ``FOR UPDATE``. There the transaction is opened with
    ``BEGIN IMMEDIATE`` (see ``configure_sqlite`` in the application
    package), which takes the database write lock before the first read.
    """

    def __init__(self, engine):
        self.engine = engine
        writer = engine
        if engine.dialect.name == 'sqlite':
            writer = engine.execution_options(sqlite_begin='IMMEDIATE')
        self._writer_sessions = sessionmaker(bind=writer, expire_on_commit=False)
        self._reader_sessions = sessionmaker(bind=engine, expire_on_commit=False)

    def submit(self, sample_id, fields):
        """Upsert the review for ``sample_id``.

        Returns ``(review, created)``. Raises NotFound when the sample does
        not exist, ReferencedSampleMissing when it disappears before the
        insert lands, PersistenceError for any other database failure.
        """
        session = self._writer_sessions()
        try:
            with session.begin():
                sample = self._lock_sample(session, sample_id)
                if sample is None:
                    raise NotFound('Referenced sample does not exist')
                existing = self._lock_review(session, sample_id)
                review, created = self._write_review(session, sample, existing, fields)
        except IntegrityError as e:
            if is_foreign_key_violation(e):
                logger.warning(f"Review for sample {sample_id} rejected, sample vanished: {str(e.orig)}")
                raise ReferencedSampleMissing(details=str(e.orig)) from e
            logger.error(f"IntegrityError while saving review for sample {sample_id}: {str(e)}")
            raise PersistenceError('Failed to save review', details=str(e.orig)) from e
        except SQLAlchemyError as e:
            logger.error(f"Database error while saving review for sample {sample_id}: {str(e)}")
            raise PersistenceError('Failed to save review', details=str(e)) from e
        finally:
            session.close()

        logger.info(f"Review {review.id} for sample {sample_id} {'created' if created else 'updated'}.")
        return review, created

    def get(self, sample_id):
        """The review row for ``sample_id``, or None when it has not been reviewed."""
        try:
            with self._reader_sessions() as session:
                return session.execute(
                    select(ReviewedSample).where(ReviewedSample.sample_id == sample_id)
                ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Database error while fetching review for sample {sample_id}: {str(e)}")
            raise PersistenceError('Failed to fetch review', details=str(e)) from e

    def _lock_sample(self, session, sample_id):
        return session.execute(
            select(Sample).where(Sample.id == sample_id).with_for_update()
        ).scalar_one_or_none()

    def _lock_review(self, session, sample_id):
        return session.execute(
            select(ReviewedSample).where(ReviewedSample.sample_id == sample_id).with_for_update()
        ).scalar_one_or_none()

    def _write_review(self, session, sample, existing, fields):
        now = datetime.utcnow()
        if existing is not None:
            # created_at and sample_time stay as captured on first review
            for column, value in fields.items():
                setattr(existing, column, value)
            existing.updated_at = now
            session.flush()
            return existing, False

        review = ReviewedSample(sample_id=sample.id, sample_time=sample.time,
                                created_at=now, updated_at=now, **fields)
        session.add(review)
        session.flush()
        return review, True
