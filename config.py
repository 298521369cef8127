import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SERVER_VERSION = '2.0.0'
    # Browser origins allowed to open sockets (comma separated)
    CORS_ORIGINS = [o.strip() for o in os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173',
    ).split(',') if o.strip()]
    # Delay between both players readying up and the reveal (seconds)
    COUNTDOWN_SECONDS = int(os.environ.get('COUNTDOWN_SECONDS', '3'))
    # Rooms idle longer than this are evicted (seconds)
    ROOM_TIMEOUT_SEC = int(os.environ.get('ROOM_TIMEOUT_SEC', str(30 * 60)))
    # How often the reaper sweeps (seconds)
    REAPER_INTERVAL_SEC = int(os.environ.get('REAPER_INTERVAL_SEC', str(5 * 60)))
    # Optional: periodic server stats log (sec). 0 disables.
    STATS_LOG_INTERVAL_SEC = int(os.environ.get('STATS_LOG_INTERVAL_SEC', str(10 * 60)))
    # Past reveals kept per room
    HISTORY_LIMIT = int(os.environ.get('HISTORY_LIMIT', '20'))
