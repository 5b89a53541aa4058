import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///lessonsync.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Comma-separated extra origins; FRONTEND_URL is always allowed
    FRONTEND_URL = os.environ.get('FRONTEND_URL', 'http://localhost:3000')
    CORS_ORIGINS = [o.strip() for o in os.environ.get('CORS_ORIGINS', '').split(',') if o.strip()]
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    # Length of generated session codes
    SESSION_CODE_LENGTH = int(os.environ.get('SESSION_CODE_LENGTH', '6'))
    # Countdown tick (seconds). Production is always 1s; tests shrink it.
    TIMER_TICK_SEC = float(os.environ.get('TIMER_TICK_SEC', '1.0'))
    # Idle session eviction. Sweep interval 0 disables the sweeper.
    SESSION_IDLE_TTL_SEC = int(os.environ.get('SESSION_IDLE_TTL_SEC', str(6 * 60 * 60)))
    SESSION_SWEEP_INTERVAL_SEC = int(os.environ.get('SESSION_SWEEP_INTERVAL_SEC', '300'))
    # 0 means no cap on objective text
    OBJECTIVE_MAX_LENGTH = int(os.environ.get('OBJECTIVE_MAX_LENGTH', '0'))
    # Speech-to-Text stream configuration; must match the presenter's recorder
    SPEECH_DEFAULT_LANGUAGE = os.environ.get('SPEECH_DEFAULT_LANGUAGE', 'en-US')
    SPEECH_AUDIO_ENCODING = os.environ.get('SPEECH_AUDIO_ENCODING', 'LINEAR16')
    SPEECH_SAMPLE_RATE_HZ = int(os.environ.get('SPEECH_SAMPLE_RATE_HZ', '16000'))
    GOOGLE_CLOUD_PROJECT_ID = os.environ.get('GOOGLE_CLOUD_PROJECT_ID')
