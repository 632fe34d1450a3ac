import time
from typing import Set, Tuple

from livequiz import db, socketio
from livequiz.models import Activation


_scheduled_timer_keys: Set[Tuple[int, float]] = set()


def schedule_voting_timer(app, activation_id: int) -> None:
    """Schedule auto-close for an activation that has just entered voting.

    - No-ops in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set
    - Only applies to activations with a time_limit
    - Ensures a single timer per (activation, timer_started_at)
    - Closes the activation when the limit elapses, if it is still voting
    - Under TESTING the worker runs inline and blocks the caller for the
      remaining duration
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return

    with app.app_context():
        activation = db.session.get(Activation, activation_id)
        if not activation or activation.poll_state != 'voting' or not activation.time_limit:
            return
        started_at = activation.timer_started_at or time.time()
        key = (activation.id, started_at)
        if key in _scheduled_timer_keys:
            app.logger.info(f"[timer-skip] activation={activation.id} already scheduled")
            return
        _scheduled_timer_keys.add(key)
        duration = max(0.0, started_at + activation.time_limit - time.time())
        room_code = activation.room.room_code if activation.room else None
        app.logger.info(
            f"[timer-set] activation={activation.id} duration={duration:.1f}s deadline={activation.voting_deadline}"
        )

    def _worker(aid: int, expected_start: float, delay: float):
        hb = int(app.config.get('TIMER_HEARTBEAT_SEC', 0) or 0)
        if hb > 0:
            slept = 0.0
            while slept < delay:
                step = min(hb, delay - slept)
                time.sleep(step)
                slept += step
                app.logger.info(f"[timer-heartbeat] activation={aid} remaining={max(0.0, delay - slept):.1f}s")
        else:
            time.sleep(delay)
        with app.app_context():
            _scheduled_timer_keys.discard((aid, expected_start))
            current = db.session.get(Activation, aid)
            if not current:
                return
            app.logger.info(f"[timer-fire] activation={aid} state={current.poll_state}")
            if current.poll_state != 'voting' or current.timer_started_at != expected_start:
                app.logger.info(f"[timer-abort] activation={aid} state or timer changed")
                return
            current.poll_state = 'closed'
            db.session.add(current)
            db.session.commit()
            if room_code:
                socketio.emit(
                    'state_update',
                    {'room_code': room_code, 'activation_id': aid},
                    to=f"room:{room_code}",
                    namespace='/ws',
                )

    if app.config.get('TESTING'):
        # Blocks the calling request thread until the deadline
        _worker(activation_id, started_at, duration)
    else:
        socketio.start_background_task(_worker, activation_id, started_at, duration)
