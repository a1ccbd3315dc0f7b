"""Unifi Exporter

Usage:
  unifi-exporter [options] -s <unifi_url> -u <username> -p <password>

Exposes Prometheus metrics about the stations of a Unifi Controller

Options:
  -h                   Print this help doc
  -s <url>             URL of the Unifi server, without path  eg https://unifi.local:8443
  -u <username>        Name of Unifi admin user with read permissions
  -p <password>        Password of the above user
  -n <networks>        Comma separated names of the networks whose stations are exported [default: ]
  --site=<site>        Unifi site to read stations from [default: default]
  --port=<port>        Port to serve metrics on [default: 8080]
  --timeout=<seconds>  Timeout of each request to the Unifi server [default: 10]
  -i                   Run in insecure mode (no checking of server's certificate)
  -t                   Run test mode (outputs the fetched stations as json)
  -v                   Verbose logging
"""

import json
import logging
import sys
from dataclasses import asdict
from time import sleep

import urllib3
from docopt import DocoptExit, docopt
from prometheus_client import REGISTRY, start_http_server

from .collector import Collector
from .unifi import Client, UnifiError

log = logging.getLogger(__name__)


def parse_networks(value):
    return frozenset(n.strip() for n in (value or '').split(',') if n.strip())


def parse_args(argv=None):
    args = docopt(__doc__, argv=argv)
    args['verify'] = not args['-i']
    args['networks'] = parse_networks(args['-n'])
    try:
        args['port'] = int(args['--port'])
        args['timeout'] = float(args['--timeout'])
    except ValueError:
        raise DocoptExit('--port and --timeout must be numbers')
    return args


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args['-v'] else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    if not args['verify']:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    client = Client(
        args['-s'],
        args['-u'],
        args['-p'],
        site=args['--site'],
        verify=args['verify'],
        timeout=args['timeout'],
    )
    try:
        client.authenticate()
    except UnifiError as e:
        log.error('failed to connect to unifi controller: %s', e)
        return 1

    if args['-t']:
        try:
            stations = client.get_stations()
        except UnifiError as e:
            log.error('getting stations: %s', e)
            return 1
        print(json.dumps([asdict(s) for s in stations], indent=2))
        return 0

    if not args['networks']:
        log.warning('no networks configured with -n, '
                    'no station metrics will be exported')
    REGISTRY.register(Collector(client, args['networks']))
    start_http_server(args['port'])
    log.info('serving metrics on port %d', args['port'])

    while True:
        sleep(1)


if __name__ == '__main__':
    sys.exit(main())
