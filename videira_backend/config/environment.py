"""
Environment Configuration for the church console backend

This module provides centralized access to environment variables for:
- Document store selection (MongoDB or Firestore)
- Firebase Authentication and Cloud Messaging
- Background jobs (automatic backup, birthday check)
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Flask
SECRET_KEY = os.environ.get('SECRET_KEY', 'videira-dev-secret')
CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')

# Document store: 'mongo' or 'firestore'
DOCUMENT_STORE = os.environ.get('DOCUMENT_STORE', 'mongo')
MONGO_URI = os.environ.get('MONGO_URI', 'mongodb://localhost:27017/videira')
MONGO_DB_NAME = os.environ.get('MONGO_DB_NAME', 'videira')

# Firebase
FIREBASE_WEB_API_KEY = os.environ.get('FIREBASE_WEB_API_KEY', '')
NOTIFICATION_TOPIC = os.environ.get('NOTIFICATION_TOPIC', '')

# Sync
RECONCILE_DELAY_SECONDS = float(os.environ.get('RECONCILE_DELAY_SECONDS', '1.0'))

# Background jobs
ENABLE_SCHEDULER = os.environ.get('ENABLE_SCHEDULER', 'true').lower() == 'true'
AUTO_BACKUP_INTERVAL_HOURS = int(os.environ.get('AUTO_BACKUP_INTERVAL_HOURS', '24'))
BIRTHDAY_CHECK_HOUR = int(os.environ.get('BIRTHDAY_CHECK_HOUR', '9'))
BACKUP_DIR = os.environ.get('BACKUP_DIR', 'backups')
MAX_LOCAL_BACKUPS = int(os.environ.get('MAX_LOCAL_BACKUPS', '5'))

# Reports
CHURCH_NAME = os.environ.get('CHURCH_NAME', 'Igreja Videira')
