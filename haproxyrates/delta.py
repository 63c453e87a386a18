# -*- coding: utf-8 -*-
# vim:fenc=utf-8
"""
haproxyrates.delta
~~~~~~~~~~~~~~~~~~

Derive per second rates and ratios for a proxy out of two consecutive
snapshots. Nothing here keeps state between calls.
"""
from collections import namedtuple
import math

from haproxyrates.metrics import (QUEUE_LIMIT, SESSION_LIMIT, WARNING_FIELDS,
                                  ERROR_FIELDS, RESPONSE_FIELDS)

DerivedMetric = namedtuple('DerivedMetric', ['name', 'value'])


def _is_number(value):
    return isinstance(value, int) and not isinstance(value, bool)


def rate_of(current, previous, elapsed, scale=1):
    """
    Calculate the per second rate of a counter.

    Counters which went backwards, HAProxy was restarted for instance, give
    zero.

    Arguments:
        current (int): Value of the counter now.
        previous (int): Value of the counter in the previous snapshot.
        elapsed (float): Seconds between the two snapshots.
        scale (int): Multiply the difference by this factor.

    Returns:
        The rate rounded to the nearest integer, 0 when any of the arguments
        is missing.
    """
    if not _is_number(current) or not _is_number(previous) or elapsed is None:
        return 0

    value = max(current - previous, 0) * scale / (elapsed or 1)

    return int(math.floor(value + 0.5))


def sum_of(record, fields):
    """
    Sum the values of a few fields of a record.

    Returns:
        The sum of the fields which are present, None if none is present.
    """
    values = [record.get(field) for field in fields
              if _is_number(record.get(field))]
    if not values:
        return None

    return sum(values)


def ratio_of(record, metric):
    """
    Calculate the ratio of a value against its limit.

    Arguments:
        record (dict): Field values of a proxy.
        metric (tuple): A namedtuple of MetricNamesRatio.

    Returns:
        A float, 0.0 when either the value or the limit is missing or zero.
    """
    value = record.get(metric.name)
    limit = record.get(metric.limit)
    if not (_is_number(value) and _is_number(limit) and value and limit):
        return 0.0

    return value / limit


def gauge(record, field):
    """Return the current value of a field, 0 when it is missing"""
    value = record.get(field)

    return value if _is_number(value) else 0


def derive_metrics(current, previous, elapsed):
    """
    Derive metrics for a proxy.

    Arguments:
        current (dict): Field values of the proxy from the current snapshot.
        previous (dict): Field values of the proxy from the previous
            snapshot, None if the proxy wasn't there.
        elapsed (float): Seconds between the two snapshots.

    Returns:
        A list of DerivedMetric namedtuples, in the order they are reported.
    """
    if previous is None:
        previous = {}

    def rate(field):
        return rate_of(current.get(field), previous.get(field), elapsed)

    metrics = [
        DerivedMetric('HAPROXY_REQUESTS_QUEUED', gauge(current, 'qcur')),
        DerivedMetric(QUEUE_LIMIT.title, ratio_of(current, QUEUE_LIMIT)),
        DerivedMetric('HAPROXY_REQUESTS_HANDLED', rate('req_tot')),
        DerivedMetric('HAPROXY_REQUESTS_ABORTED_BY_CLIENT', rate('cli_abrt')),
        DerivedMetric('HAPROXY_REQUESTS_ABORTED_BY_SERVER', rate('srv_abrt')),
        DerivedMetric('HAPROXY_SESSIONS', gauge(current, 'scur')),
        DerivedMetric(SESSION_LIMIT.title, ratio_of(current, SESSION_LIMIT)),
        DerivedMetric('HAPROXY_BYTES_IN', rate('bin')),
        DerivedMetric('HAPROXY_BYTES_OUT', rate('bout')),
        DerivedMetric('HAPROXY_WARNINGS',
                      rate_of(sum_of(current, WARNING_FIELDS),
                              sum_of(previous, WARNING_FIELDS),
                              elapsed)),
        DerivedMetric('HAPROXY_ERRORS',
                      rate_of(sum_of(current, ERROR_FIELDS),
                              sum_of(previous, ERROR_FIELDS),
                              elapsed)),
        DerivedMetric('HAPROXY_FAILED_HEALTH_CHECKS', rate('chkfail')),
        # downtime is in seconds, report milliseconds of downtime per second
        DerivedMetric('HAPROXY_DOWNTIME_SECONDS',
                      rate_of(current.get('downtime'),
                              previous.get('downtime'),
                              elapsed,
                              scale=1000)),
    ]
    metrics.extend(DerivedMetric(name, rate(field))
                   for name, field in RESPONSE_FIELDS)

    return metrics
