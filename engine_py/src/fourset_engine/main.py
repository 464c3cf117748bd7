"""FastAPI application for the four-of-a-kind game backend"""

import logging
import os

from .rules import create_rules
from .ws.server import create_app

logger = logging.getLogger(__name__)


def rules_from_env():
    """Rule overrides taken from the process environment."""
    overrides = {}
    if os.getenv("TURN_TIMEOUT"):
        overrides["turn_timeout"] = float(os.environ["TURN_TIMEOUT"])
    if os.getenv("BOT_DELAY"):
        overrides["bot_delay"] = float(os.environ["BOT_DELAY"])
    if os.getenv("ENABLE_BOTS"):
        overrides["enable_bots"] = os.environ["ENABLE_BOTS"].lower() == "true"
    return create_rules(**overrides)


rules = rules_from_env()
app = create_app(rules)
logger.info(f"Turn timeout {rules.turn_timeout}s, bots {'on' if rules.enable_bots else 'off'}")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
