"""
Device sync cycle against the clinic sync API.

One cycle pushes every unsynced local row, then pulls what changed on the
server since the last pull (a full restore when the device never pulled).
A failed request leaves the mirror untouched, so the next cycle resends
the same payload; the server treats the replay as a no-op.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import requests

from .store import LocalMirror, utc_now

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 45


@dataclass
class SyncCycleResult:
    pushed: int = 0
    pulled: Dict[str, int] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class MirrorSyncEngine:
    """
    Runs push/pull cycles for a LocalMirror.

    `base_url` points at the sync API root (e.g. https://host/api/v1/sync).
    `session` defaults to a requests.Session; anything with compatible
    get/post methods works.
    """

    def __init__(self, mirror: LocalMirror, base_url: str, access_token: Optional[str] = None,
                 session=None, timeout: int = DEFAULT_TIMEOUT_SECONDS):
        self.mirror = mirror
        self.base_url = base_url.rstrip('/')
        self.access_token = access_token
        self.session = session or requests.Session()
        self.timeout = timeout

    def _url(self, endpoint: str) -> str:
        return f'{self.base_url}/{endpoint}/'

    def _headers(self) -> Dict[str, str]:
        headers = {'Accept': 'application/json'}
        if self.access_token:
            headers['Authorization'] = f'Bearer {self.access_token}'
        return headers

    # --- Phases ---

    def push(self) -> int:
        """Send unsynced rows; mark them synced once the server accepted them."""
        payload = self.mirror.unsynced_payload()
        if not payload:
            logger.debug('No local changes to push')
            return 0

        response = self.session.post(
            self._url('push'), json=payload, headers=self._headers(), timeout=self.timeout
        )
        response.raise_for_status()
        pushed = response.json()['pushed']

        self.mirror.mark_pushed(payload, pushed_at=utc_now())
        logger.info('Pushed local changes', extra={'event': 'mirror_pushed', 'pushed': pushed})
        return pushed

    def pull(self) -> Dict[str, int]:
        """Fetch server changes since the stored cursor and merge them."""
        since = self.mirror.last_pulled_at
        if since:
            response = self.session.post(
                self._url('pull'),
                json={'since': since, 'deviceId': self.mirror.device_id},
                headers=self._headers(),
                timeout=self.timeout,
            )
        else:
            response = self.session.get(self._url('restore'), headers=self._headers(), timeout=self.timeout)
        response.raise_for_status()

        return self.mirror.merge_pulled(response.json())

    def run_cycle(self) -> SyncCycleResult:
        """Push then pull. The pull is skipped when the push failed."""
        result = SyncCycleResult()

        try:
            result.pushed = self.push()
        except requests.RequestException as e:
            logger.error('Sync push failed, will retry next cycle', extra={'event': 'mirror_push_failed', 'error': str(e)})
            result.error = f'push: {e}'
            return result

        try:
            result.pulled = self.pull()
        except requests.RequestException as e:
            logger.error('Sync pull failed, will retry next cycle', extra={'event': 'mirror_pull_failed', 'error': str(e)})
            result.error = f'pull: {e}'

        return result
