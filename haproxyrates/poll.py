# -*- coding: utf-8 -*-
# vim:fenc=utf-8
# pylint: disable=too-many-arguments
#
"""Polls statistics from HAProxy and prints rates per frontend and backend

Usage:
    haproxyrates [-f <file> ] [-p | -P]

Options:
    -f, --file <file>  configuration file with settings
                       [default: /etc/haproxyrates.conf]
    -p, --print        show default settings
    -P, --print-conf   show configuration
    -h, --help         show this screen
    -v, --version      show version
"""
import asyncio
from concurrent.futures import ThreadPoolExecutor
import sys
import time
import signal
import socket
import logging
from functools import partial
from configparser import ConfigParser, ExtendedInterpolation, ParsingError
import copy
from docopt import docopt

from haproxyrates import __version__ as VERSION
from haproxyrates import DEFAULT_OPTIONS
from haproxyrates.delta import derive_metrics
from haproxyrates.fetch import build_fetcher
from haproxyrates.parse import parse_stats
from haproxyrates.utils import (StatsError, Dispatcher, StdoutHandler,
                                configuration_check, poll_interval,
                                proxy_entries, build_proxy_aliases,
                                resolve_alias)

LOG_FORMAT = ('%(asctime)s [%(process)d] [%(funcName)-20s] '
              '%(levelname)-8s %(message)s')
logging.basicConfig(format=LOG_FORMAT)
log = logging.getLogger('root')  # pylint: disable=I0011,C0103


class PollState():
    """
    The last snapshot and the time it was taken.

    It is never modified, a new one replaces it on every poll.

    Arguments:
        snapshot (dict): Statistics per proxy, None for the empty state.
        timestamp (float): When the snapshot was taken.
    """
    __slots__ = ('snapshot', 'timestamp')

    def __init__(self, snapshot=None, timestamp=None):
        self.snapshot = snapshot
        self.timestamp = timestamp

    @property
    def empty(self):
        """True when there isn't a snapshot to compare against"""
        return self.snapshot is None


def format_record(name, value, alias):
    """
    Build a line for a metric.

    Arguments:
        name (str): Metric name
        value (int or float): Metric value, floats are printed with 3 digits
        alias (str): Name of the proxy

    Returns:
        A string ending with a newline.
    """
    if isinstance(value, float):
        value = '{v:.3f}'.format(v=value)

    return '{n} {v} {a}\n'.format(n=name, v=value, a=alias)


class Poller():
    """
    Poll HAProxy, calculate rates and dispatch them.

    Arguments:
        fetcher (obj): An object with a fetch coroutine which returns the
            statistics as text.
        interval (float): Seconds to wait between polls.
        source (str): Prefix for proxies without an alias.
        aliases (obj): A mapping of proxy name to alias, empty when every
            proxy is reported.
        output (obj): A dispatcher object which has send method registered.
        clock (obj): A callable which returns the current time in seconds.
    """
    def __init__(self, fetcher, interval, source, aliases, output,
                 clock=time.monotonic):
        self.fetcher = fetcher
        self.interval = interval
        self.source = source
        self.aliases = aliases
        self.output = output
        self.clock = clock
        self.state = PollState()
        self.stop_requested = False
        self._stopping = None

    async def poll_once(self):
        """
        Run a single poll cycle.

        The first cycle and the one after a failed cycle only store a
        snapshot, as a rate needs two of them.

        Returns:
            The number of records dispatched.
        """
        try:
            raw = await self.fetcher.fetch()
            current = parse_stats(raw, self.aliases)
        except StatsError as exc:
            log.error('failed to get statistics from %s: %s',
                      self.fetcher,
                      exc)
            self.state = PollState()
            return 0

        now = self.clock()
        if self.state.empty:
            log.info('received first set of statistics for %s proxies',
                     len(current))
            self.state = PollState(current, now)
            return 0

        elapsed = now - self.state.timestamp
        previous = self.state.snapshot
        cnt_metrics = 0
        for name, record in current.items():
            alias = resolve_alias(name, self.aliases, self.source)
            if name not in previous:
                log.info('%s is new, reporting zero rates', name)
            for metric in derive_metrics(record, previous.get(name), elapsed):
                cnt_metrics += 1
                self.output.signal('send',
                                   data=format_record(metric.name,
                                                      metric.value,
                                                      alias))

        self.state = PollState(current, now)
        log.debug('dispatched %s metrics for %s proxies, %.3f secs elapsed',
                  cnt_metrics,
                  len(current),
                  elapsed)

        return cnt_metrics

    async def run(self):
        """
        Poll HAProxy every interval seconds until stop() is called.
        """
        # The event is bound to the running loop, stop() may come earlier
        self._stopping = asyncio.Event()
        if self.stop_requested:
            self._stopping.set()
        while not self._stopping.is_set():
            timestamp = time.time()
            await self.poll_once()
            log.debug('wall clock time in seconds: %.3f',
                      time.time() - timestamp)
            try:
                await asyncio.wait_for(self._stopping.wait(), self.interval)
            except asyncio.TimeoutError:
                pass
        log.info('polling stopped')

    def stop(self):
        """Stop polling once the running cycle is finished"""
        self.stop_requested = True
        if self._stopping is not None:
            self._stopping.set()


def main():
    """Parse CLI arguments and launch main program"""
    args = docopt(__doc__, version=VERSION)

    config = ConfigParser(interpolation=ExtendedInterpolation())
    # Set defaults for all sections
    config.read_dict(copy.copy(DEFAULT_OPTIONS))
    # Load configuration from a file. NOTE: ConfigParser doesn't warn if user
    # sets a filename which doesn't exist, in this case defaults will be used.
    try:
        config.read(args['--file'])
    except ParsingError as exc:
        sys.exit(str(exc))

    if args['--print']:
        for section in sorted(DEFAULT_OPTIONS):
            print("[{}]".format(section))
            for key, value in sorted(DEFAULT_OPTIONS[section].items()):
                print("{k} = {v}".format(k=key, v=value))
            print()
        sys.exit(0)
    if args['--print-conf']:
        for section in sorted(config):
            print("[{}]".format(section))
            for key, value in sorted(config.items(section, raw=True)):
                print("{k} = {v}".format(k=key, v=value))
            print()
        sys.exit(0)

    try:
        configuration_check(config, 'haproxy')
        source = (config.get('haproxy', 'source') or
                  socket.gethostname()).strip()
        aliases = build_proxy_aliases(proxy_entries(config), source)
    except ValueError as exc:
        sys.exit(str(exc))

    loglevel = (config.get('haproxy', 'loglevel')
                .upper())  # pylint: disable=no-member
    log.setLevel(getattr(logging, loglevel, None))

    log.info('haproxyrates %s version started', VERSION)
    executor = ThreadPoolExecutor(max_workers=1)
    fetcher = build_fetcher(config, executor)
    interval = poll_interval(config) / 1000
    if aliases:
        log.info('reporting only proxies %s', ', '.join(aliases))

    output = Dispatcher()
    output.register('send', StdoutHandler().send)
    poller = Poller(fetcher, interval, source, aliases, output)

    loop = asyncio.new_event_loop()

    def shutdown(signalname):
        """Performs a clean shutdown

        Arguments:
            signalname (str): Signal name
        """
        log.info('received %s', signalname)
        poller.stop()

    loop.add_signal_handler(signal.SIGHUP, partial(shutdown, 'SIGHUP'))
    loop.add_signal_handler(signal.SIGTERM, partial(shutdown, 'SIGTERM'))

    log.info('polling %s every %.3f seconds', fetcher, interval)
    try:
        loop.run_until_complete(poller.run())
    except KeyboardInterrupt:
        log.critical('Ctrl-C received')
    finally:
        log.info('waiting for threads to finish any pending IO tasks')
        executor.shutdown(wait=True)
        log.info('closing asyncio event loop')
        loop.close()

    sys.exit(0)

# This is the standard boilerplate that calls the main() function.
if __name__ == '__main__':
    main()
