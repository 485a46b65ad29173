import unittest
import tempfile
import shutil
import os
from sample_review_app.app import create_app, db
from sample_review_app.app.config import Config

REVIEW_PAYLOAD = {
    'testItem': 'pH',
    'testResult': '7.0',
    'standard': 'GB 5749-2022',
    'detectionLimit': '0.1',
    'department': 'Water Quality',
    'responsiblePerson': 'Wang',
    'notification': 'Within limits',
}

class TestConfig(Config):
    TESTING = True
    # File-backed so that separate connections (and threads) see one database;
    # an in-memory SQLite database lives on a single shared connection.
    SQLALCHEMY_DATABASE_URI = None
    SECRET_KEY = 'test-secret-key'
    DEBUG = True

class BaseTestCase(unittest.TestCase):
    def setUp(self):
        self.db_dir = tempfile.mkdtemp()
        config_class = type('TestConfig', (TestConfig,), {
            'SQLALCHEMY_DATABASE_URI': 'sqlite:///' + os.path.join(self.db_dir, 'test_app.db'),
        })
        self.app = create_app(config_class)
        self.client = self.app.test_client()
        # No app context stays pushed: each request and each `with
        # self.app.app_context()` block gets its own session, removed on exit.

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.engine.dispose()
        shutil.rmtree(self.db_dir, ignore_errors=True)

    @property
    def lifecycle(self):
        return self.app.extensions['sample_review']['lifecycle']

    @property
    def reviews(self):
        return self.app.extensions['sample_review']['reviews']

    # Helper methods
    def submit_sample(self, name="water", time="2024-01-01T10:00", person="Li", phone="13800000000"):
        return self.client.post('/api/samples', json={
            'name': name,
            'time': time,
            'person': person,
            'phone': phone
        })

    def create_sample(self, **kwargs):
        response = self.submit_sample(**kwargs)
        self.assertEqual(response.status_code, 200)
        return response.get_json()['id']

    def submit_review(self, sample_id, **overrides):
        payload = dict(REVIEW_PAYLOAD, sample_id=sample_id)
        payload.update(overrides)
        return self.client.post('/api/review', json=payload)

    def create_review(self, sample_id, **overrides):
        response = self.submit_review(sample_id, **overrides)
        self.assertEqual(response.status_code, 200)
        return response.get_json()['review']['id']

    def count_rows(self, model, **filters):
        with self.app.app_context():
            return model.query.filter_by(**filters).count()

    def fetch_row(self, model, record_id):
        with self.app.app_context():
            row = db.session.get(model, record_id)
            return row.to_dict() if row else None

if __name__ == '__main__':
    unittest.main()
