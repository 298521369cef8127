from .state import RoomService


def sweep_expired_rooms(app, service: RoomService) -> list:
    timeout = int(app.config.get('ROOM_TIMEOUT_SEC', 30 * 60))
    evicted = service.reap(timeout)
    if evicted:
        app.logger.info(f"[reaper] evicted={len(evicted)} rooms={','.join(evicted)} remaining={len(service.registry)}")
    return evicted


def log_server_stats(app, service: RoomService) -> dict:
    stats = service.server_stats()
    app.logger.info(
        f"[server-stats] rooms={stats['totalRooms']} connections={stats['activeConnections']} "
        f"uptime={int(stats['uptime'])}s games={stats['counters']['gamesCompleted']}"
    )
    return stats


def start_background_tasks(app, socketio, service: RoomService) -> None:
    """Start the periodic reaper and, if enabled, the stats logger.

    - No-ops in TESTING mode
    - Runs one sweep immediately so a restarted worker starts clean
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_BACKGROUND_TASKS_IN_TESTS'):
        return

    interval = int(app.config.get('REAPER_INTERVAL_SEC', 5 * 60))
    stats_interval = int(app.config.get('STATS_LOG_INTERVAL_SEC', 0))

    def _reaper():
        sweep_expired_rooms(app, service)
        while True:
            socketio.sleep(interval)
            try:
                sweep_expired_rooms(app, service)
            except Exception:
                app.logger.exception("[reaper] sweep failed")

    def _stats():
        while True:
            socketio.sleep(stats_interval)
            try:
                log_server_stats(app, service)
            except Exception:
                app.logger.exception("[server-stats] failed")

    socketio.start_background_task(_reaper)
    app.logger.info(f"[reaper] started interval={interval}s timeout={app.config.get('ROOM_TIMEOUT_SEC')}s")
    if stats_interval > 0:
        socketio.start_background_task(_stats)
