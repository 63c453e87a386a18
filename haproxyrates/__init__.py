# -*- coding: utf-8 -*-
# vim:fenc=utf-8
#
"""
A Python tool which turns HAProxy statistics into per-interval rates.
"""
__title__ = 'haproxyrates'
__license__ = 'Apache 2.0'
__version__ = '0.1.0'

DEFAULT_OPTIONS = {
    'DEFAULT': {
        'loglevel': 'info',
        'timeout': '5',
    },
    'haproxy': {
        'socket-path': '',
        'url': '',
        'username': '',
        'password': '',
        'source': '',
        'poll-seconds': '',
        'poll-interval': '1000',
        'proxies': '',
        'proxies-file': '',
    },
}
