import logging
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from .errors import NotFound, PersistenceError, ValidationError
from .models import REVIEW_DECISIONS, SAMPLE_STATUSES
from .store import REVIEWED_SAMPLES, SAMPLES

logger = logging.getLogger(__name__)

SUBMISSION_FIELDS = ('name', 'time', 'person', 'phone')


def _is_blank(value):
    return value is None or str(value).strip() == ''


def parse_time(value):
    """Parse an ISO-8601 date-time ("2024-01-01T10:00", "2024-01-01 10:00:00").

    Aware values are converted to naive UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f'time must be an ISO-8601 date-time, got "{value}"')
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class LifecycleController(object):
    """Moves samples between the active, reviewed, deleted and purged states."""

    def __init__(self, store):
        self.store = store

    @contextmanager
    def _transaction(self, action, commit=True):
        session = self.store.session
        try:
            yield
            if commit:
                session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database error while trying to {action}: {str(e)}")
            raise PersistenceError(f'Failed to {action}', details=str(e)) from e
        except Exception:
            session.rollback()
            raise

    def list_active(self, status=None, include_deleted=False):
        if status is not None and status not in SAMPLE_STATUSES:
            raise ValidationError(f'Unknown status filter "{status}"')
        with self._transaction('list samples', commit=False):
            return self.store.list_samples(status=status, include_deleted=include_deleted)

    def submit(self, name=None, time=None, person=None, phone=None):
        values = {'name': name, 'time': time, 'person': person, 'phone': phone}
        missing = [field for field in SUBMISSION_FIELDS if _is_blank(values[field])]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        scheduled = parse_time(time)

        with self._transaction('create sample'):
            sample = self.store.add_sample(name=str(name), time=scheduled,
                                           person=str(person), phone=str(phone))
        logger.info(f"Sample '{sample.name}' submitted as {sample.id}.")
        return sample

    def get(self, sample_id):
        with self._transaction('fetch sample', commit=False):
            sample = self.store.get_sample(sample_id)
        if sample is None:
            raise NotFound(f'Sample {sample_id} not found')
        return sample

    def soft_delete(self, record_id):
        live = {'deleted': False}
        with self._transaction('delete sample'):
            source_table = self.store.update_first(
                record_id, {'deleted': True}, {SAMPLES: live, REVIEWED_SAMPLES: live})
            if source_table is None:
                raise NotFound(f'Sample {record_id} not found')
        logger.info(f"Record {record_id} moved to the recycle bin from {source_table}.")

    def recycle_bin(self):
        with self._transaction('list recycle bin', commit=False):
            return self.store.deleted_records()

    def restore(self, record_id):
        binned = {'deleted': True}
        with self._transaction('restore sample'):
            source_table = self.store.update_first(
                record_id, {'deleted': False}, {SAMPLES: binned, REVIEWED_SAMPLES: binned})
            if source_table is None:
                raise NotFound(f'Sample {record_id} not found in the recycle bin')
        logger.info(f"Record {record_id} restored in {source_table}.")

    def purge(self, sample_id):
        with self._transaction('permanently delete sample'):
            if not self.store.purge_sample(sample_id):
                raise NotFound(f'Sample {sample_id} not found')
        logger.info(f"Sample {sample_id} and its review permanently deleted.")

    def purge_review(self, review_id):
        with self._transaction('permanently delete review'):
            if not self.store.purge_review(review_id):
                raise NotFound(f'Review {review_id} not found')
        logger.info(f"Review {review_id} permanently deleted.")

    def set_status(self, record_id, status):
        if status not in REVIEW_DECISIONS:
            raise ValidationError(f'Invalid status "{status}", expected one of: {", ".join(REVIEW_DECISIONS)}')

        # A sample row may be approved before any review exists for it
        with self._transaction('update sample status'):
            source_table = self.store.update_first(
                record_id, {'status': status}, {SAMPLES: {}, REVIEWED_SAMPLES: {'deleted': False}})
            if source_table is None:
                raise NotFound(f'Sample {record_id} not found')
        logger.info(f"Status of {record_id} in {source_table} set to {status}.")
