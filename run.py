import logging
import os

from wishingwell import create_app
from wishingwell.realtime import socketio

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = create_app()

if __name__ == "__main__":
    port = int(os.getenv("PORT", 5050))
    socketio.run(
        app,
        host="127.0.0.1",
        port=port,
        debug=False,
        use_reloader=False,
        log_output=True,
        allow_unsafe_werkzeug=True,
    )

# Local:
# docker compose --env-file .env.docker up -d
# alembic upgrade head
# PORT=5050 python run.py
# rq worker -u $REDIS_URL default     (only with USE_TASK_QUEUE=1)
# python scripts/sweep_expired.py     (cron, e.g. every 5 minutes)
