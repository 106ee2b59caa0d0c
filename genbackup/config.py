import os


class Config:
    """Base configuration"""

    # Backup run
    BACKUP_CONFIG = os.environ.get('GENBACKUP_CONFIG')
    ARCHIVER = os.environ.get('GENBACKUP_ARCHIVER') or 'tar'
    TAR_COMMAND = os.environ.get('GENBACKUP_TAR_COMMAND') or 'tar'
    # Numeric settings stay strings here and are checked when a run starts
    ARCHIVE_TIMEOUT = os.environ.get('GENBACKUP_ARCHIVE_TIMEOUT') or None  # seconds, None waits forever
    MAX_WORKERS = os.environ.get('GENBACKUP_MAX_WORKERS') or None  # None: one worker per entry

    # Logging
    LOG_DIR = os.environ.get('GENBACKUP_LOG_DIR')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True

    # Use local data directory for development
    BASE_DIR = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    DATA_DIR = os.path.join(BASE_DIR, 'data')
    LOG_DIR = os.environ.get('GENBACKUP_LOG_DIR') or os.path.join(DATA_DIR, 'logs')


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEBUG = False
    LOG_DIR = None
    BACKUP_CONFIG = None


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': ProductionConfig
}
