import os


def _int_or_none(value):
    return int(value) if value not in (None, '') else None


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Deck source file (Cartella records); unset -> a generated deck
    DECK_PATH = os.environ.get('DECK_PATH')
    DECK_SEED = _int_or_none(os.environ.get('DECK_SEED'))
    PORT = int(os.environ.get('PORT', '3000'))
    # Advertised to the admin screen for the join QR code; derived from the LAN IP when unset
    PUBLIC_URL = os.environ.get('PUBLIC_URL')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
