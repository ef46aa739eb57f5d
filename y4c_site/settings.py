import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('Y4C_SECRET_KEY') or 'replace-this-with-a-secure-secret-in-production'

DEBUG = (os.environ.get('Y4C_DEBUG', '1').strip().lower() in ('1', 'true', 'yes'))

ALLOWED_HOSTS = [
    'localhost',
    '127.0.0.1',
    'testserver',
    '.youths4change.org',
]

INSTALLED_APPS = [
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'backend',
    'website',
    'payments',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'website.middleware.LoginAttemptMiddleware',
]

ROOT_URLCONF = 'y4c_site.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.messages.context_processors.messages',
                'website.context_processors.admin_session',
            ],
        },
    },
]

WSGI_APPLICATION = 'y4c_site.wsgi.application'

# Only sessions live here; projects, donations etc. belong to the REST backend.
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

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# === REST backend ===
Y4C_API_URL = os.environ.get('Y4C_API_URL') or 'http://localhost:5000'
Y4C_API_TIMEOUT = int(os.environ.get('Y4C_API_TIMEOUT') or 30)
# Seconds a successful GET is served from memory
Y4C_CACHE_TTL = int(os.environ.get('Y4C_CACHE_TTL') or 300)

# === Donations ===
DONATION_CURRENCY = 'USD'
DONATION_QUICK_AMOUNTS = [10, 25, 50, 100, 250]
# Display only, never sent to the backend
LOCAL_CURRENCY = 'GHS'
LOCAL_CURRENCY_RATE = os.environ.get('Y4C_LOCAL_CURRENCY_RATE') or '12.00'

COUNTRIES = [
    'Ghana',
    'Kenya',
    'Nigeria',
    'South Africa',
    'Uganda',
    'Tanzania',
    'Rwanda',
    'Cameroon',
]

# === Admin login throttling ===
ADMIN_LOGIN_FAIL_THRESHOLD = 3
ADMIN_LOGIN_LOCK_MINUTES = 2

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'y4c': {
            'format': '[{asctime}] {levelname} {name}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'y4c',
        },
    },
    'loggers': {
        'backend': {'handlers': ['console'], 'level': 'DEBUG' if DEBUG else 'INFO', 'propagate': False},
        'payments': {'handlers': ['console'], 'level': 'INFO', 'propagate': False},
        'website': {'handlers': ['console'], 'level': 'INFO', 'propagate': False},
    },
}
