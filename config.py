"""
Configuration file for the MedPyxis scheduling engine
"""

import logging
import os

# App configuration
APP_CONFIG = {
    'title': 'MedChart Pro - MedPyxis Scheduling Engine',
    'description': 'Dose timing, eligibility and dose quantity rules for the MedPyxis cabinet',
    'version': '1.0.0',
}

# Scheduling configuration
ENGINE_CONFIG = {
    'collection_window_minutes': 60,  # window opens 1 hour before due
    'reminder_lookahead_hours': 2,
    'due_now_minutes': 5,
    'log_legacy_fallback': True,
}

# Statuses that count toward the dose ledger
DOSE_STATUSES = ('administered', 'success')

# Statuses that mark the last time a medicine left the cabinet
COLLECTION_STATUSES = ('collected', 'administered')

# Dose calculator configuration
CALCULATOR_CONFIG = {
    'display_decimals': 2,
}

# Development configuration
DEV_CONFIG = {
    'log_level': 'INFO',
}

# Production configuration
PROD_CONFIG = {
    'log_level': 'WARNING',
}

# Get current environment
ENVIRONMENT = os.getenv('ENVIRONMENT', 'development').lower()

# Use appropriate config based on environment
if ENVIRONMENT == 'production':
    CURRENT_CONFIG = {**APP_CONFIG, **PROD_CONFIG}
else:
    CURRENT_CONFIG = {**APP_CONFIG, **DEV_CONFIG}


def setup_logging(level: str = None):
    """Configure root logging from the current environment"""
    level = level or os.getenv('LOG_LEVEL') or CURRENT_CONFIG['log_level']
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
