"""
haproxyrates.metrics
~~~~~~~~~~~~~~~~~~~~

This module provides constants for the fields found in the CSV output of
'show stat' and for the metric names we report. Field names are listed in
the order HAProxy prints them, so a row is mapped onto them by position.
"""
from collections import namedtuple

FIELD_NAMES = (
    'pxname',          # proxy name
    'svname',          # service name (FRONTEND, BACKEND or server name)
    'qcur',            # current queued requests
    'qmax',            # max queued requests
    'scur',            # current sessions
    'smax',            # max sessions
    'slim',            # session limit
    'stot',            # total sessions
    'bin',             # bytes in
    'bout',            # bytes out
    'dreq',            # denied requests
    'dresp',           # denied responses
    'ereq',            # request errors
    'econ',            # connection errors
    'eresp',           # response errors
    'wretr',           # retries (warning)
    'wredis',          # redispatches (warning)
    'status',          # UP/DOWN/NOLB/MAINT/OPEN/CLOSED
    'weight',
    'act',
    'bck',
    'chkfail',         # failed health checks
    'chkdown',         # UP->DOWN transitions
    'lastchg',
    'downtime',        # total seconds of downtime
    'qlimit',          # queue limit
    'pid',
    'iid',
    'sid',
    'throttle',
    'lbtot',
    'tracked',
    'type',            # 0=frontend, 1=backend, 2=server, 3=socket
    'rate',
    'rate_lim',
    'rate_max',
    'check_status',
    'check_code',
    'check_duration',
    'hrsp_1xx',
    'hrsp_2xx',
    'hrsp_3xx',
    'hrsp_4xx',
    'hrsp_5xx',
    'hrsp_other',
    'hanafail',
    'req_rate',
    'req_rate_max',
    'req_tot',         # total HTTP requests
    'cli_abrt',        # transfers aborted by the client
    'srv_abrt',        # transfers aborted by the server
)

# Only these rows are consumed, servers and sockets are skipped.
PROXY_TYPES = ('FRONTEND', 'BACKEND')

METRIC_NAMES = [
    'HAPROXY_REQUESTS_QUEUED',
    'HAPROXY_REQUESTS_QUEUE_LIMIT',
    'HAPROXY_REQUESTS_HANDLED',
    'HAPROXY_REQUESTS_ABORTED_BY_CLIENT',
    'HAPROXY_REQUESTS_ABORTED_BY_SERVER',
    'HAPROXY_SESSIONS',
    'HAPROXY_SESSION_LIMIT',
    'HAPROXY_BYTES_IN',
    'HAPROXY_BYTES_OUT',
    'HAPROXY_WARNINGS',
    'HAPROXY_ERRORS',
    'HAPROXY_FAILED_HEALTH_CHECKS',
    'HAPROXY_DOWNTIME_SECONDS',
    'HAPROXY_1XX_RESPONSES',
    'HAPROXY_2XX_RESPONSES',
    'HAPROXY_3XX_RESPONSES',
    'HAPROXY_4XX_RESPONSES',
    'HAPROXY_5XX_RESPONSES',
    'HAPROXY_OTHER_RESPONSES',
]

# Counters which are summed before we calculate their rate
WARNING_FIELDS = ('wretr', 'wredis')
ERROR_FIELDS = ('ereq', 'econ', 'eresp')

RESPONSE_FIELDS = (
    ('HAPROXY_1XX_RESPONSES', 'hrsp_1xx'),
    ('HAPROXY_2XX_RESPONSES', 'hrsp_2xx'),
    ('HAPROXY_3XX_RESPONSES', 'hrsp_3xx'),
    ('HAPROXY_4XX_RESPONSES', 'hrsp_4xx'),
    ('HAPROXY_5XX_RESPONSES', 'hrsp_5xx'),
    ('HAPROXY_OTHER_RESPONSES', 'hrsp_other'),
)

MetricNamesRatio = namedtuple('MetricNamesRatio', ['name', 'limit', 'title'])

QUEUE_LIMIT = MetricNamesRatio(name='qcur',
                               limit='qlimit',
                               title='HAPROXY_REQUESTS_QUEUE_LIMIT')
SESSION_LIMIT = MetricNamesRatio(name='scur',
                                 limit='slim',
                                 title='HAPROXY_SESSION_LIMIT')
