from app import create_app, db
from app.models import Sample, ReviewedSample

app = create_app()

@app.shell_context_processor
def make_shell_context():
    return {
        'db': db,
        'Sample': Sample,
        'ReviewedSample': ReviewedSample,
        'lifecycle': app.extensions['sample_review']['lifecycle'],
        'reviews': app.extensions['sample_review']['reviews'],
    }

if __name__ == '__main__':
    import sys
    if len(sys.argv) > 1 and sys.argv[1] == 'test':
        print("Running tests...")
        import unittest

        # Run from the project root (`python sample_review_app/run.py test`)
        # so that 'tests' is discoverable from the CWD.
        loader = unittest.TestLoader()
        suite = loader.discover('tests')
        runner = unittest.TextTestRunner()
        result = runner.run(suite)
        if result.wasSuccessful():
            sys.exit(0)
        else:
            sys.exit(1)
    else:
        port = app.config.get('HTTP_PORT', 8080)
        print(f"Starting sample review service on port {port}...")
        try:
            app.run(host='0.0.0.0', port=port, threaded=True)
        finally:
            # Close pooled connections when the server stops
            with app.app_context():
                db.engine.dispose()
