# -*- coding: utf-8 -*-
# vim:fenc=utf-8
"""
haproxyrates.utils
~~~~~~~~~~~~~~~~~~

This module provides functions, constants and classes that are used within
haproxyrates.
"""
import os
import stat
import sys
from collections import defaultdict
from types import MappingProxyType
import logging
import configparser
import re

log = logging.getLogger('root')  # pylint: disable=I0011,C0103

CSV_SUFFIX = ';csv'

OPTIONS_TYPE = {
    'haproxy': {
        'loglevel': 'get',
        'timeout': 'getfloat',
        'socket-path': 'get',
        'url': 'get',
        'username': 'get',
        'source': 'get',
        'poll-seconds': 'getfloat',
        'poll-interval': 'getfloat',
        'proxies': 'get',
        'proxies-file': 'get',
    },
}


class StatsError(Exception):
    """
    Base class for errors which abandon a poll cycle
    """


class TransportError(StatsError):
    """
    A wrapper of all possible exceptions while talking to HAProxy
    """
    def __init__(self, raised):
        self.raised = raised

        super().__init__('transport failed: {e}'.format(e=raised))


class UnexpectedStatus(StatsError):
    """
    HAProxy answered over HTTP with a status code other than 200
    """
    def __init__(self, status_code):
        self.status_code = status_code

        super().__init__('unexpected status {c}, recheck the URL and the '
                         'credentials'.format(c=status_code))


class EmptyResponse(StatsError):
    """
    HAProxy answered with an empty body
    """
    def __init__(self):
        super().__init__('empty body')


class ParseError(StatsError):
    """
    Statistics can't be parsed
    """


def load_file_content(filename):
    """
    Build list from the content of a file

    Arguments:
        filename (str): A absolute path of a filename

    Returns:
        A list
    """
    commented = re.compile(r'\s*?#')
    try:
        with open(filename, 'r') as _file:
            _content = [line.strip() for line in _file.read().splitlines()
                        if not commented.match(line) and line.strip()]
    except OSError as exc:
        log.error('failed to read %s:%s', filename, exc)
        return []
    else:
        return _content


def is_unix_socket(path):
    """
    Check if path is a valid UNIX socket.

    Arguments:
        path (str): A file name path

    Returns:
        True if path is a valid UNIX socket otherwise False.
    """
    try:
        mode = os.stat(path).st_mode
    except OSError:
        return False

    return stat.S_ISSOCK(mode)


def ensure_csv_url(url):
    """Append ';csv' to the URL of the statistics page unless it is there"""
    if url.endswith(CSV_SUFFIX):
        return url

    return url + CSV_SUFFIX


def configuration_check(config, section):
    """
    Perform a sanity check on configuration

    Arguments:
        config (obg): A configparser object which holds our configuration.
        section (str): Section name

    Raises:
        ValueError on the first occureance of invalid configuration

    Returns:
        None if all checks are successful.
    """
    loglevel = config[section]['loglevel']
    num_level = getattr(logging, loglevel.upper(), None)
    if not isinstance(num_level, int):
        raise ValueError("invalid configuration, section:'{s}' option:'{o}' "
                         "error: invalid loglevel '{l}'"
                         .format(s=section,
                                 o='loglevel',
                                 l=loglevel))

    for option, getter in OPTIONS_TYPE[section].items():
        # Empty values mean that the option isn't set.
        if not config.get(section, option, raw=True, fallback=''):
            continue
        try:
            getattr(config, getter)(section, option)
        except (configparser.Error, ValueError) as exc:
            # For some errors ConfigParser mention section/option names and
            # for others not. We want for all possible errors to mention
            # section and option names in order to make the life of our user
            # easier.
            if 'section' not in str(exc):
                raise ValueError("invalid configuration, section:'{s}' "
                                 "option:'{p}' error:{e}"
                                 .format(s=section,
                                         p=option,
                                         e=str(exc)))
            else:
                raise ValueError("invalid configuration, error:{e}"
                                 .format(e=str(exc)))

    if not (config.get(section, 'socket-path')
            or config.get(section, 'url')):
        raise ValueError("invalid configuration, section:'{s}' error:'to get "
                         "statistics from HAProxy either socket-path or url "
                         "must be set'".format(s=section))

    if poll_interval(config, section) <= 0:
        raise ValueError("invalid configuration, section:'{s}' error:'poll "
                         "interval must be a positive number'"
                         .format(s=section))


def poll_interval(config, section='haproxy'):
    """
    Return how often we poll HAProxy, in milliseconds.

    poll-seconds takes precedence over poll-interval, which is expressed
    in milliseconds.

    Arguments:
        config (obg): A configparser object which holds our configuration.
        section (str): Section name

    Returns:
        A float
    """
    seconds = config.get(section, 'poll-seconds', fallback='')
    if seconds and float(seconds):
        return float(seconds) * 1000

    return config.getfloat(section, 'poll-interval', fallback=1000.0)


def proxy_entries(config, section='haproxy'):
    """
    Collect the proxy filter entries.

    Entries are set one per line in the proxies option and in the file the
    proxies-file option points to.

    Arguments:
        config (obg): A configparser object which holds our configuration.
        section (str): Section name

    Returns:
        A list of 'name[,alias]' strings
    """
    entries = [line.strip() for line in
               config.get(section, 'proxies', fallback='').splitlines()
               if line.strip()]
    proxies_file = config.get(section, 'proxies-file', fallback='')
    if proxies_file:
        entries.extend(load_file_content(proxies_file))

    return entries


def build_proxy_aliases(entries, source):
    """
    Build the mapping of proxy names to the names we report them with.

    Arguments:
        entries (list): Strings in the form of 'name[,alias]'.
        source (str): Prefix for every alias.

    Raises:
        ValueError when a proxy name is set more than once.

    Returns:
        A read-only mapping, empty when no entries are given.
    """
    aliases = {}
    for entry in entries:
        if not entry:
            continue
        values = [value.strip() for value in entry.split(',')]
        name = values[0]
        alias = values[1] if len(values) > 1 else ''
        if name in aliases:
            raise ValueError("invalid configuration, proxy '{n}' is defined "
                             "twice, each name is required to be unique"
                             .format(n=name))
        aliases[name] = '{s}-{a}'.format(s=source, a=alias or name).strip()

    return MappingProxyType(aliases)


def resolve_alias(name, aliases, source):
    """Return the name which metrics of a proxy are reported with"""
    alias = aliases.get(name)
    if alias is None:
        alias = '{s}-{n}'.format(s=source, n=name)

    return alias


class Dispatcher(object):
    """
    Dispatch data to different handlers
    """
    def __init__(self):
        self.handlers = defaultdict(list)

    def register(self, signal, callback):
        """
        Register a callback to a signal

        Multiple callbacks can be assigned to the same signal.

        Arguments:
            signal (str): The name of the signal
            callback (obj): A callable object to call for the given signal.
       """
        self.handlers[signal].append(callback)

    def signal(self, signal, **kwargs):
        """
        Run registered handlers

        Arguments:
            signal (str): A registered signal
        """
        if signal in self.handlers:
            for handler in self.handlers.get(signal):
                handler(**kwargs)


class StdoutHandler():
    """
    A handler to write metric records to standard output

    Arguments:
        stream (obj): A file-like object, defaults to sys.stdout
    """
    def __init__(self, stream=None):
        self.stream = stream

    def send(self, **kwargs):
        """Write a record and flush it right away"""
        stream = self.stream if self.stream is not None else sys.stdout
        stream.write(kwargs.get('data'))
        stream.flush()
