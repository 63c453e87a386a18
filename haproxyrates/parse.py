# -*- coding: utf-8 -*-
# vim:fenc=utf-8
"""
haproxyrates.parse
~~~~~~~~~~~~~~~~~~

Turn the CSV output of 'show stat' into a snapshot, a dictionary keyed by
proxy name with a dictionary of field values per proxy. Only frontends and
backends are kept.
"""
import logging
import re

import pandas

from haproxyrates.metrics import FIELD_NAMES, PROXY_TYPES
from haproxyrates.utils import ParseError

log = logging.getLogger('root')  # pylint: disable=I0011,C0103
INTEGER = re.compile(r'-?[0-9]+')


def split_rows(text):
    """
    Split raw statistics into rows of cells.

    Blank lines and comments are skipped. Every row is padded with None or
    truncated so it has one cell per field name.

    Arguments:
        text (str): Raw statistics

    Returns:
        A list of lists
    """
    width = len(FIELD_NAMES)
    rows = []
    for line in text.splitlines():
        if not line or line.startswith('#'):
            continue
        cells = line.split(',')[:width]
        cells.extend([None] * (width - len(cells)))
        rows.append(cells)

    return rows


def convert(value):
    """
    Convert a cell to its value.

    Arguments:
        value (str): A cell, None or NaN when the row is too short.

    Returns:
        None for an empty cell, an integer if the cell holds one, otherwise
        the trimmed string.
    """
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value:
        return None
    if INTEGER.fullmatch(value):
        return int(value, 10)

    return value


def parse_stats(text, proxy_filter=None):
    """
    Parse statistics for frontends and backends.

    Arguments:
        text (str): The output of 'show stat' command.
        proxy_filter (obj): A mapping or a set with the names of the proxies
            to keep, every proxy is kept when it is empty or None.

    Raises:
        ParseError when there is no data to parse.

    Returns:
        A dictionary of proxy name to a dictionary of field values.
    """
    if not text:
        raise ParseError('no data returned from HAProxy')

    data_frame = pandas.DataFrame(split_rows(text),
                                  columns=list(FIELD_NAMES),
                                  dtype=object)
    # Filtering for Pandas
    keep = data_frame['svname'].isin(PROXY_TYPES)
    if proxy_filter:
        keep &= data_frame['pxname'].isin(list(proxy_filter))

    snapshot = {}
    for row in data_frame[keep].to_dict(orient='records'):
        record = {field: convert(value) for field, value in row.items()}
        snapshot[row['pxname']] = record

    log.debug('parsed statistics for %s proxies out of %s rows',
              len(snapshot),
              len(data_frame.index))

    return snapshot
