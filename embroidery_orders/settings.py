"""
Django settings for embroidery_orders project.

Values come from environment variables; the defaults suit local development.
"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'dev-insecure-secret-key')

DEBUG = os.environ.get('DJANGO_DEBUG', '1') == '1'

ALLOWED_HOSTS = [h for h in os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if h]


INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'order_lifecycle',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'embroidery_orders.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

ASGI_APPLICATION = 'embroidery_orders.asgi.application'


if os.environ.get('POSTGRES_DB'):
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.environ['POSTGRES_DB'],
            'USER': os.environ.get('POSTGRES_USER', 'postgres'),
            'PASSWORD': os.environ.get('POSTGRES_PASSWORD', ''),
            'HOST': os.environ.get('POSTGRES_HOST', 'localhost'),
            'PORT': os.environ.get('POSTGRES_PORT', '5432'),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }


LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# Order lifecycle

# Allowed drift between the cached and the recomputed order total
ORDER_TOTAL_EPSILON = os.environ.get('ORDER_TOTAL_EPSILON', '0.01')

REFUND_WINDOW_DAYS = int(os.environ.get('REFUND_WINDOW_DAYS', '30'))

# Thread and bobbin are priced by the stitch count estimated from design area
STITCHES_PER_SQUARE_INCH = os.environ.get('STITCHES_PER_SQUARE_INCH', '1000')

# Used while the material cost table is empty. cost buys width x length
# inches of area materials.
DEFAULT_MATERIAL_COSTS = [
    {'name': 'Fabric', 'cost': '34', 'width': '30', 'length': '36', 'waste_factor': '1.5'},
    {'name': 'Patch Attach', 'cost': '100', 'width': '9', 'length': '360', 'waste_factor': '1.5'},
    {'name': 'Thread', 'cost': '4', 'width': '0', 'length': '5000', 'waste_factor': '1.2'},
    {'name': 'Bobbin', 'cost': '50', 'width': '0', 'length': '35000', 'waste_factor': '1.2'},
    {'name': 'Cut-Away Stabilizer', 'cost': '180', 'width': '18', 'length': '3600', 'waste_factor': '1.5'},
    {'name': 'Wash-Away Stabilizer', 'cost': '60', 'width': '15', 'length': '900', 'waste_factor': '1.5'},
]

REALTIME_CHANNEL_URL = os.environ.get('REALTIME_CHANNEL_URL', '')
REALTIME_CHANNEL_TIMEOUT = float(os.environ.get('REALTIME_CHANNEL_TIMEOUT', '5'))

OUTBOX_MAX_RETRIES = int(os.environ.get('OUTBOX_MAX_RETRIES', '5'))


LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'json': {
            '()': 'order_lifecycle.utils.logging.JsonFormatter',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'json',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': os.environ.get('LOG_LEVEL', 'INFO'),
    },
    'loggers': {
        'django.db.backends': {
            'level': 'WARNING',
        },
    },
}
