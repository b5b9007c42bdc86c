import json

import pytest

from config import Config
from processing.builder import build_catalog
from processing.tabular import parse_delimited
from registry.series_registry import HeuristicResolver
from session import SessionContext
from sources.base import DataSource
from sources.manager import SourceChain


FEED_RECORDS = [
    {"data": "2024-01-01", "wresbal_oficjalny": "3,200,000", "btc_usd": 42000, "sofr_rate": "5,31"},
    {"data": "2024-01-02", "wresbal_oficjalny": "3,250,000", "btc_usd": 43000, "sofr_rate": "5,30"},
    {"data": "2024-01-03", "wresbal_oficjalny": "3,300,000", "btc_usd": 44000, "sofr_rate": "5,32"},
]

TS_2024_01_01 = 1704067200
TS_2024_01_02 = 1704153600
TS_2024_01_03 = 1704240000


class StaticSource(DataSource):
    """Serves canned payloads in order; exceptions in the list are raised."""

    def __init__(self, *responses, fmt='auto', name='static'):
        super().__init__(fmt)
        self._responses = list(responses)
        self._name = name
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    async def fetch_text(self) -> str:
        item = self._responses[min(self.calls, len(self._responses) - 1)]
        self.calls += 1
        if isinstance(item, Exception):
            raise item
        return item


class FakeClock:
    def __init__(self, start=1_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def feed_json():
    return json.dumps(FEED_RECORDS)


@pytest.fixture
def csv_catalog():
    text = (
        "date,WRESBAL,Rate\n"
        "2024-01-01,100,5.1\n"
        "2024-01-02,105,5.2\n"
        "2024-01-03,110,5.3\n"
    )
    return build_catalog(parse_delimited(text), HeuristicResolver())


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_session():
    def _make(*sources, **cache_kwargs):
        cfg = Config(data_url='https://feed.invalid/data.json', default_range='ALL')
        return SessionContext.create(cfg=cfg, chain=SourceChain(list(sources)), **cache_kwargs)
    return _make
