"""Client for the parts of the Unifi controller API the exporter reads."""

import logging
import threading
from dataclasses import dataclass

from requests import RequestException, Session

log = logging.getLogger(__name__)

API_PATHS = {
    'login': '/api/login',
    'self': '/api/self',
    'network_conf': '/api/s/{site}/rest/networkconf',
    'clients': '/api/s/{site}/stat/sta',
}


class UnifiError(Exception):
    pass


class AuthenticationError(UnifiError):
    """No usable session could be established with the controller."""


class FetchError(UnifiError):
    """A read from the controller failed after authenticating."""


@dataclass(frozen=True)
class Station:
    mac: str
    hostname: str
    network: str
    manufacturer: str
    wired: bool
    ip: str
    uptime: int
    last_seen: int
    tx_bytes: int
    rx_bytes: int

    @classmethod
    def from_api(cls, client, networks=None):
        """Build a Station from one record of the stat/sta endpoint.

        networks maps networkconf ids to names; the record's own network
        field is used when its network_id is unknown.
        """
        networks = networks or {}
        wired = bool(client.get('is_wired'))
        tx_bytes = client.get('tx_bytes')
        rx_bytes = client.get('rx_bytes')
        if wired:
            # wired clients report their counters under a prefixed key
            if tx_bytes is None:
                tx_bytes = client.get('wired-tx_bytes')
            if rx_bytes is None:
                rx_bytes = client.get('wired-rx_bytes')
        return cls(
            mac=client.get('mac') or '',
            hostname=client.get('hostname') or client.get('name') or '',
            network=(networks.get(client.get('network_id'))
                     or client.get('network') or ''),
            manufacturer=client.get('oui') or '',
            wired=wired,
            ip=client.get('ip') or '',
            uptime=_counter(client.get('uptime')),
            last_seen=_counter(client.get('last_seen')),
            tx_bytes=_counter(tx_bytes),
            rx_bytes=_counter(rx_bytes),
        )


def _counter(value):
    # a field the controller left empty or garbled counts as 0
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        log.debug('ignoring non-numeric value %r', value)
        return 0


class Client(object):
    """One cookie session against a Unifi controller.

    Calls are serialized with a lock because prometheus_client serves
    every scrape on its own thread. A scrape's authenticate() and
    get_stations() are not held together, so two scrapes may interleave
    between them; re-login only swaps the session cookie, which either
    scrape can then use.
    """

    def __init__(self, url, username, password, site='default', verify=True,
                 timeout=10):
        self.url = url.rstrip('/')
        self.username = username
        self.password = password
        self.site = site
        self.timeout = timeout
        self.session = Session()
        self.session.verify = verify
        self._lock = threading.Lock()

    def authenticate(self):
        with self._lock:
            if self._session_valid():
                return
            self._login()

    def get_stations(self):
        with self._lock:
            networks = {
                conf.get('_id'): conf.get('name')
                for conf in self._get_data(self._path('network_conf'))
            }
            clients = self._get_data(self._path('clients'))
        stations = [Station.from_api(c, networks) for c in clients]
        log.debug('fetched %d stations', len(stations))
        return stations

    def _path(self, name):
        return self.url + API_PATHS[name].format(site=self.site)

    def _session_valid(self):
        if not self.session.cookies:
            return False
        try:
            resp = self.session.get(self._path('self'), timeout=self.timeout)
        except RequestException as e:
            log.debug('checking session: %s', e)
            return False
        return resp.status_code == 200

    def _login(self):
        payload = {
            'username': self.username,
            'password': self.password,
            'strict': True,
        }
        try:
            resp = self.session.post(self._path('login'), json=payload,
                                     timeout=self.timeout)
            resp.raise_for_status()
            body = resp.json()
        except (RequestException, ValueError) as e:
            raise AuthenticationError(
                'logging in to {}: {}'.format(self.url, e)) from e
        rc = _response_code(body)
        if rc != 'ok':
            raise AuthenticationError(
                'logging in to {}: response code {!r}'.format(self.url, rc))
        log.info('fetched new cookies')

    def _get_data(self, url):
        try:
            resp = self.session.get(url, timeout=self.timeout)
            if resp.status_code == 401:
                raise FetchError('{}: session not authorized'.format(url))
            resp.raise_for_status()
            body = resp.json()
        except (RequestException, ValueError) as e:
            raise FetchError('{}: {}'.format(url, e)) from e
        rc = _response_code(body)
        if rc != 'ok':
            raise FetchError('{}: response code {!r}'.format(url, rc))
        data = body.get('data') or []
        if not isinstance(data, list):
            raise FetchError('{}: data is not a list'.format(url))
        return [record for record in data if isinstance(record, dict)]


def _response_code(body):
    """meta.rc of a controller response, None when the body has none."""
    if not isinstance(body, dict):
        return None
    meta = body.get('meta')
    if not isinstance(meta, dict):
        return None
    return meta.get('rc')
