import uuid
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

SAMPLE_STATUSES = ('pending', 'approved', 'rejected')
REVIEW_DECISIONS = ('approved', 'rejected')

# Request key -> column name
REVIEW_FIELDS = (
    ('testItem', 'test_item'),
    ('testResult', 'test_result'),
    ('standard', 'standard'),
    ('detectionLimit', 'detection_limit'),
    ('department', 'department'),
    ('responsiblePerson', 'responsible_person'),
    ('notification', 'notification'),
)
REVIEW_FIELD_MAX_LENGTH = 100


def new_id():
    return uuid.uuid4().hex


def _isoformat(value):
    return value.isoformat() if value else None


class Sample(db.Model):
    __tablename__ = 'samples'

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    name = db.Column(db.String(100), nullable=False)
    time = db.Column(db.DateTime, nullable=False)  # scheduled submission time
    person = db.Column(db.String(50), nullable=False)
    phone = db.Column(db.String(20), nullable=False)
    status = db.Column(db.String(10), nullable=False, default='pending', index=True)
    deleted = db.Column(db.Boolean, nullable=False, default=False, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'time': _isoformat(self.time),
            'person': self.person,
            'phone': self.phone,
            'status': self.status,
            'deleted': self.deleted,
        }

    def __repr__(self):
        return f'<Sample {self.id} {self.status}>'


class ReviewedSample(db.Model):
    __tablename__ = 'reviewed_samples'

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    sample_id = db.Column(db.String(32), db.ForeignKey('samples.id'), unique=True, nullable=False)
    # Copied from Sample.time on first review, never rewritten
    sample_time = db.Column(db.DateTime, nullable=False)
    test_item = db.Column(db.String(REVIEW_FIELD_MAX_LENGTH), nullable=False)
    test_result = db.Column(db.String(REVIEW_FIELD_MAX_LENGTH), nullable=False)
    standard = db.Column(db.String(REVIEW_FIELD_MAX_LENGTH), nullable=False)
    detection_limit = db.Column(db.String(REVIEW_FIELD_MAX_LENGTH), nullable=False)
    department = db.Column(db.String(REVIEW_FIELD_MAX_LENGTH), nullable=False)
    responsible_person = db.Column(db.String(REVIEW_FIELD_MAX_LENGTH), nullable=False)
    notification = db.Column(db.String(REVIEW_FIELD_MAX_LENGTH), nullable=False)
    status = db.Column(db.String(10), nullable=True)
    deleted = db.Column(db.Boolean, nullable=False, default=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        data = {
            'id': self.id,
            'sample_id': self.sample_id,
            'sample_time': _isoformat(self.sample_time),
        }
        for _, column in REVIEW_FIELDS:
            data[column] = getattr(self, column)
        data.update({
            'status': self.status,
            'deleted': self.deleted,
            'created_at': _isoformat(self.created_at),
            'updated_at': _isoformat(self.updated_at),
        })
        return data

    def __repr__(self):
        return f'<ReviewedSample {self.id} of {self.sample_id}>'
