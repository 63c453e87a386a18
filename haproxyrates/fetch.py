# -*- coding: utf-8 -*-
# vim:fenc=utf-8
"""
haproxyrates.fetch
~~~~~~~~~~~~~~~~~~

Fetchers return the raw CSV text of HAProxy statistics, either from the
stats UNIX socket or from the HTTP statistics page. Both raise a subclass of
StatsError on failure and never retry, the caller decides what to do.
"""
import asyncio
import logging

import requests
from requests.auth import HTTPBasicAuth

from haproxyrates.utils import (TransportError, UnexpectedStatus,
                                EmptyResponse, ensure_csv_url,
                                is_unix_socket)

log = logging.getLogger('root')  # pylint: disable=I0011,C0103
CMD = 'show stat'


class SocketFetcher():
    """
    Fetch statistics over the stats UNIX socket of HAProxy.

    Arguments:
        socket_file (str): The full path of the UNIX socket file.
        timeout (float): Seconds to wait for connecting and for the answer.
    """
    def __init__(self, socket_file, timeout=None):
        self.socket_file = socket_file
        self.timeout = timeout

    def __repr__(self):
        return 'SocketFetcher({s!r})'.format(s=self.socket_file)

    async def fetch(self):
        """
        Send 'show stat' command and read the response until HAProxy closes
        the connection.

        Raises:
            TransportError when connection fails

        Returns:
            The response as a string.
        """
        log.debug('connecting to UNIX socket %s', self.socket_file)
        try:
            connect = asyncio.open_unix_connection(self.socket_file)
            reader, writer = await asyncio.wait_for(connect, self.timeout)
        except (ConnectionRefusedError, PermissionError, asyncio.TimeoutError,
                OSError) as exc:
            raise TransportError(raised=exc)

        log.debug('sending command "%s" to UNIX socket %s',
                  CMD,
                  self.socket_file)
        try:
            writer.write('{c}\n'.format(c=CMD).encode())
            await writer.drain()
            data = await asyncio.wait_for(reader.read(), self.timeout)
        except (ConnectionResetError, BrokenPipeError, asyncio.TimeoutError,
                OSError) as exc:
            raise TransportError(raised=exc)
        finally:
            writer.close()

        log.debug('received %s bytes from UNIX socket %s',
                  len(data),
                  self.socket_file)

        try:
            return data.decode()
        except UnicodeDecodeError as exc:
            raise TransportError(raised=exc)


class HTTPFetcher():
    """
    Fetch statistics from the HTTP statistics page of HAProxy.

    requests is blocking, so the call is offloaded to an executor in order
    not to block the event loop.

    Arguments:
        url (str): URL of the statistics page, ';csv' is appended if missing.
        username (str): Username for basic authentication, optional.
        password (str): Password for basic authentication.
        timeout (float): Seconds to wait for the answer.
        executor (obj): A ThreadPoolExecutor, None for the default one.
    """
    def __init__(self, url, username=None, password=None, timeout=None,
                 executor=None):
        self.url = ensure_csv_url(url)
        self.auth = None
        if username:
            self.auth = HTTPBasicAuth(username, password or '')
        self.timeout = timeout
        self.executor = executor

    def __repr__(self):
        return 'HTTPFetcher({u!r})'.format(u=self.url)

    def get(self):
        """
        Perform the HTTP GET request.

        Raises:
            TransportError, UnexpectedStatus or EmptyResponse

        Returns:
            The body of the response as a string.
        """
        log.debug('fetching %s', self.url)
        try:
            response = requests.get(self.url,
                                    auth=self.auth,
                                    timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(raised=exc)

        if response.status_code != 200:
            raise UnexpectedStatus(response.status_code)
        if not response.text:
            raise EmptyResponse()

        return response.text

    async def fetch(self):
        """Run get() in the executor and return its result"""
        loop = asyncio.get_running_loop()

        return await loop.run_in_executor(self.executor, self.get)


def build_fetcher(config, executor=None, section='haproxy'):
    """
    Select how we fetch statistics based on the configuration.

    Arguments:
        config (obj): A configParser object which holds configuration.
        executor (obj): A ThreadPoolExecutor for the HTTP fetcher.
        section (str): Section name

    Raises:
        ValueError when neither socket-path nor url is set.

    Returns:
        A SocketFetcher or a HTTPFetcher object.
    """
    socket_file = config.get(section, 'socket-path')
    url = config.get(section, 'url')
    timeout = config.getfloat(section, 'timeout')
    if timeout <= 0:  # zero or less disables the timeout
        timeout = None

    if socket_file:
        if url:
            log.warning('both socket-path and url are set, using %s',
                        socket_file)
        if not is_unix_socket(socket_file):
            log.warning("%s isn't a UNIX socket, yet", socket_file)

        return SocketFetcher(socket_file, timeout=timeout)
    elif url:
        return HTTPFetcher(url,
                           username=config.get(section, 'username'),
                           password=config.get(section, 'password', raw=True),
                           timeout=timeout,
                           executor=executor)

    raise ValueError("invalid configuration, section:'{s}' error:'to get "
                     "statistics from HAProxy either socket-path or url must "
                     "be set'".format(s=section))
