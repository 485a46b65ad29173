import os
import json

basedir = os.path.abspath(os.path.dirname(__file__))
instance_folder_path = os.path.join(basedir, '..', 'instance')
settings_file_path = os.path.join(instance_folder_path, 'settings.json')

def load_settings():
    default_settings = {
        'HTTP_PORT': 8080,
        'DB_POOL_SIZE': 10,
    }
    if not os.path.exists(instance_folder_path):
        try:
            os.makedirs(instance_folder_path)
        except OSError as e:
            print(f"Warning: Could not create instance folder {instance_folder_path}. Using default settings. Error: {e}")
            return default_settings

    if os.path.exists(settings_file_path):
        try:
            with open(settings_file_path, 'r') as f:
                loaded_settings = json.load(f)
                default_settings.update(loaded_settings)
        except (json.JSONDecodeError, TypeError):
            print(f"Warning: Could not decode {settings_file_path}. Using default settings.")
    return default_settings

current_settings = load_settings()

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'your-secret-key'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(instance_folder_path, 'app.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    INSTANCE_FOLDER_PATH = instance_folder_path

    HTTP_PORT = int(os.environ.get('PORT') or current_settings.get('HTTP_PORT'))

    # Both tables share one bounded pool; review upserts hold a connection
    # for the length of their transaction.
    DB_POOL_SIZE = int(os.environ.get('DB_POOL_SIZE') or current_settings.get('DB_POOL_SIZE'))
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': DB_POOL_SIZE,
        'max_overflow': 0,
        'pool_pre_ping': True,
    }
