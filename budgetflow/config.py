"""
Configuration for the application
"""

import os

import yaml

APP_NAME = "budgetflow_api"
APP_VERSION = "0.1.0"

# Language settings
SUPPORTED_LANGUAGES = ["en-US", "zh-CN"]
DEFAULT_LANGUAGE = "en-US"

_DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), 'config', 'config.yml')


def load_config(path: str = None) -> dict:
    """
    Load the YAML configuration.

    An explicit path wins, then the BUDGETFLOW_CONFIG environment variable,
    then the config.yml bundled with the package.
    """
    config_path = path or os.getenv("BUDGETFLOW_CONFIG") or _DEFAULT_CONFIG_PATH
    with open(config_path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f)


def get_env_settings(config: dict) -> dict:
    current_env = os.getenv("BUDGETFLOW_ENV") or config['current_env']
    return config['environments'][current_env]


config = load_config()
settings = get_env_settings(config)

security_settings = settings.get('security', {})
SECRET_KEY = security_settings.get('secret_key', 'change-me')
ALGORITHM = security_settings.get('algorithm', 'HS256')
ACCESS_TOKEN_EXPIRE_MINUTES = int(security_settings.get('access_token_expire_minutes', 10080))
HASH_ITERATIONS = int(security_settings.get('hash_iterations', 100000))

CORS_ALLOW_ORIGINS = settings.get('cors', {}).get('allow_origins', ["*"])
