"""
Shared fixtures, rows of 'show stat' output are built from field values.
"""
import pytest

from haproxyrates.metrics import FIELD_NAMES

HEADER = '# ' + ','.join(FIELD_NAMES) + ','


def build_row(pxname, svname, **fields):
    """Build a CSV row, fields which aren't given are left empty"""
    values = dict(fields, pxname=pxname, svname=svname)
    cells = ['' if values.get(name) is None else str(values[name])
             for name in FIELD_NAMES]

    # HAProxy ends every row with a comma
    return ','.join(cells) + ','


def build_stats(*rows):
    return '\n'.join((HEADER,) + rows) + '\n'


@pytest.fixture
def make_row():
    return build_row


@pytest.fixture
def make_stats():
    return build_stats


@pytest.fixture
def sample_stats():
    return build_stats(
        build_row('web', 'FRONTEND', qcur=None, scur=13, slim=2000,
                  bin=1000, bout=2000, ereq=4, status='OPEN',
                  req_tot=100, hrsp_2xx=90, hrsp_5xx=0),
        build_row('app', 'srv1', scur=3, bin=10, status='UP'),
        build_row('app', 'srv2', scur=4, bin=20, status='DOWN'),
        build_row('app', 'BACKEND', qcur=0, qlimit=None, scur=7, slim=200,
                  bin=500, bout=700, econ=1, eresp=2, wretr=0, wredis=1,
                  chkfail=0, downtime=0, status='UP', cli_abrt=1,
                  srv_abrt=0, hrsp_2xx=80),
    )
