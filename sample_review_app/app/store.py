from collections import namedtuple

from .models import Sample, ReviewedSample

SAMPLES = Sample.__tablename__
REVIEWED_SAMPLES = ReviewedSample.__tablename__

# An identity is looked up in this order when it could live in either table
PARTITIONS = (
    (SAMPLES, Sample),
    (REVIEWED_SAMPLES, ReviewedSample),
)

LocatedRecord = namedtuple('LocatedRecord', ['source_table', 'record'])


class SampleStore(object):
    """One repository over the ``samples`` and ``reviewed_samples`` tables.

    A sample and its review are two phases of the same logical record kept in
    two physical tables. Every operation that has to find "the" row for an
    identity goes through :meth:`locate` or :meth:`update_first`, which try
    the partitions in :data:`PARTITIONS` order and stop at the first match.

    The store never commits; callers own the transaction on ``session``.
    """

    def __init__(self, session):
        self.session = session

    def list_samples(self, status=None, include_deleted=False):
        query = self.session.query(Sample)
        if not include_deleted:
            query = query.filter_by(deleted=False)
        if status:
            query = query.filter_by(status=status)
        return query.order_by(Sample.time, Sample.id).all()

    def add_sample(self, name, time, person, phone):
        sample = Sample(name=name, time=time, person=person, phone=phone,
                        status='pending', deleted=False)
        self.session.add(sample)
        self.session.flush()
        return sample

    def get_sample(self, sample_id):
        return self.session.get(Sample, sample_id)

    def locate(self, record_id, deleted=False):
        """Return the first ``LocatedRecord`` whose row has ``record_id`` and
        the given deleted flag, or None."""
        for source_table, model in PARTITIONS:
            record = self.session.query(model).filter_by(id=record_id, deleted=deleted).first()
            if record is not None:
                return LocatedRecord(source_table, record)
        return None

    def update_first(self, record_id, values, criteria):
        """Apply ``values`` to the first partition holding a matching row.

        ``criteria`` maps a source table to extra ``filter_by`` keywords for
        that table; tables missing from it are not considered. Each attempt is
        a single conditional UPDATE, so the affected row count decides the
        fallback. Returns the source table that was updated, or None.
        """
        for source_table, model in PARTITIONS:
            if source_table not in criteria:
                continue
            affected = self.session.query(model).filter_by(
                id=record_id, **criteria[source_table]).update(values)
            if affected:
                return source_table
        return None

    def deleted_records(self):
        located = []
        for source_table, model in PARTITIONS:
            rows = self.session.query(model).filter_by(deleted=True).all()
            located.extend(LocatedRecord(source_table, row) for row in rows)
        return located

    def purge_sample(self, sample_id):
        """Physically remove a sample and its review. False if the sample
        table has no such identity."""
        if self.session.get(Sample, sample_id) is None:
            return False
        # Dependent review first so the foreign key never dangles
        self.session.query(ReviewedSample).filter_by(sample_id=sample_id).delete()
        self.session.query(Sample).filter_by(id=sample_id).delete()
        return True

    def purge_review(self, review_id):
        return self.session.query(ReviewedSample).filter_by(id=review_id).delete() > 0
