"""Turns the controller's station list into Prometheus metrics.

The whole scrape is collect_samples(): authenticate, fetch, filter by
network and map each station to four counter samples. Failures never
leave it; they end up in the log and, for authentication, in the up gauge.
"""

import logging
from collections import namedtuple
from dataclasses import dataclass
from datetime import datetime

from prometheus_client.metrics_core import Metric

log = logging.getLogger(__name__)

STATION_LABELS = (
    'mac',
    'hostname',
    'network',
    'manufacturer',
    'wired',
    'ip',
)


@dataclass(frozen=True)
class MetricDescriptor:
    name: str
    documentation: str
    labels: tuple = ()
    kind: str = 'gauge'

    def family(self):
        # samples keep the bare name; the text exposition still writes
        # <name>_total on the HELP and TYPE lines of a counter
        return Metric(self.name, self.documentation, self.kind)


@dataclass(frozen=True)
class MetricSample:
    descriptor: MetricDescriptor
    label_values: tuple
    value: float

    @property
    def labels(self):
        return dict(zip(self.descriptor.labels, self.label_values))


Descriptors = namedtuple('Descriptors', [
    'up',
    'uptime',
    'last_seen',
    'tx_bytes',
    'rx_bytes',
])

DESCRIPTORS = Descriptors(
    up=MetricDescriptor(
        'up',
        'was talking to the Unifi controller successful',
    ),
    uptime=MetricDescriptor(
        'unifi_station_uptime_seconds',
        "uptime of device connected to Unifi controller's network",
        STATION_LABELS,
        'counter',
    ),
    last_seen=MetricDescriptor(
        'unifi_station_last_seen',
        'unix time when a device was last seen by the Unifi controller',
        STATION_LABELS,
        'counter',
    ),
    tx_bytes=MetricDescriptor(
        'unifi_station_tx_bytes',
        'bytes sent to the station',
        STATION_LABELS,
        'counter',
    ),
    rx_bytes=MetricDescriptor(
        'unifi_station_rx_bytes',
        'bytes received from the station',
        STATION_LABELS,
        'counter',
    ),
)


def describe_metrics():
    return DESCRIPTORS


def station_labels(station):
    return (
        station.mac,
        station.hostname,
        station.network,
        station.manufacturer,
        'true' if station.wired else 'false',
        station.ip,
    )


def collect_samples(client, networks, descriptors=DESCRIPTORS):
    """Run one scrape against client and return its samples in order.

    client needs authenticate() and get_stations(); networks is the set of
    network names whose stations are exported. Integer station fields are
    widened to float, which loses precision past 2**53.
    """
    try:
        client.authenticate()
    except Exception as e:
        log.error('talking to unifi controller: %s', e)
        return [MetricSample(descriptors.up, (), 0.0)]
    samples = [MetricSample(descriptors.up, (), 1.0)]

    try:
        stations = client.get_stations()
    except Exception as e:
        log.error('getting stations: %s', e)
        return samples

    for s in stations:
        if s.network not in networks:
            continue
        labels = station_labels(s)
        samples.extend([
            MetricSample(descriptors.uptime, labels, float(s.uptime)),
            MetricSample(descriptors.last_seen, labels, float(s.last_seen)),
            MetricSample(descriptors.tx_bytes, labels, float(s.tx_bytes)),
            MetricSample(descriptors.rx_bytes, labels, float(s.rx_bytes)),
        ])
    return samples


class Collector(object):
    """Custom collector for prometheus_client's registry."""

    def __init__(self, client, networks, descriptors=DESCRIPTORS):
        self.client = client
        self.networks = frozenset(networks)
        self.descriptors = descriptors

    def describe(self):
        return [d.family() for d in self.descriptors]

    def collect(self):
        start = datetime.now()
        samples = collect_samples(self.client, self.networks,
                                  self.descriptors)

        families = {}
        for sample in samples:
            name = sample.descriptor.name
            if name not in families:
                families[name] = sample.descriptor.family()
            families[name].add_sample(name, sample.labels, sample.value)

        for d in self.descriptors:
            if d.name in families:
                yield families[d.name]

        total_time = datetime.now() - start
        log.debug('collected %d samples in %s seconds', len(samples),
                  total_time.total_seconds())
