"""
Synthetic marketplace session identity.

The marketplace rejects requests that do not look like they come from a
browser with an established session. A single synthetic session (cookie
string plus user agent) is generated on first use and reused for every
request issued through the owning ``SessionManager``.
"""

import random
import string
import threading
from dataclasses import dataclass
from typing import Dict, Optional

from fake_useragent import UserAgent

from core.types import PipelineConfig
from utils.logger import get_logger

logger = get_logger(__name__)

_BASE36_ALPHABET = string.digits + string.ascii_lowercase

STATIC_COOKIES = (
    "DHaccept=webp",
    "ref_df=direct",
    "language=en",
    "intl_currency=USD",
    "__dh_gdpr__=1",
    "b_u_cc=ucc=US",
    "suship=US",
    "b2b_ship_country=US",
    "b2b_ip_country=US",
)


@dataclass(frozen=True)
class SessionData:
    """Identity material attached to every outbound request."""

    session_id: str
    cookie: str
    user_agent: str


class SessionManager:
    """Owns the memoized synthetic identity for one pipeline."""

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or PipelineConfig()
        self._rng = rng or random.SystemRandom()
        self._session: Optional[SessionData] = None
        self._lock = threading.Lock()

    def _generate_session_id(self) -> str:
        return "".join(self._rng.choice(_BASE36_ALPHABET) for _ in range(26))

    def _pick_user_agent(self) -> str:
        if not self.config.user_agent_rotation:
            return self.config.user_agent
        try:
            return UserAgent(browsers=["Chrome"]).random
        except Exception as e:  # noqa: BLE001
            logger.warning("Failed to pick a rotated user agent: %s", e)
            return self.config.user_agent

    def get_session(self) -> SessionData:
        with self._lock:
            if self._session is None:
                session_id = self._generate_session_id()
                cookie = "; ".join((f"PHPSESSID={session_id}",) + STATIC_COOKIES)
                self._session = SessionData(
                    session_id=session_id,
                    cookie=cookie,
                    user_agent=self._pick_user_agent(),
                )
                logger.info(
                    "Created synthetic marketplace session %s…",
                    session_id[:6],
                    extra={"event_type": "fetch"},
                )
            return self._session

    def get_identity(self) -> str:
        """Cookie header value; stable for the lifetime of this manager."""
        return self.get_session().cookie

    def identity_headers(self) -> Dict[str, str]:
        session = self.get_session()
        return {
            "User-Agent": session.user_agent,
            "cookie": session.cookie,
            "Referer": self.config.marketplace_origin,
        }
