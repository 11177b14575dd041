"""
conftest.py - Shared pytest fixtures for crowdlend tests

Provides common fixtures used across unit, functional and conformance tests:
- A wired engine (role registry, claim ledger, USDC settlement asset)
  with a registered, funded sponsor
- Campaign ids advanced to each lifecycle stage
"""

import pytest

from tests.helpers import (
    BORROWER, SPONSOR,
    build_engine, make_terms, open_campaign, fund_fully, repay_all,
)


@pytest.fixture
def setup():
    """(engine, usdc, claims, roles) with a registered sponsor."""
    return build_engine()


@pytest.fixture
def engine(setup):
    return setup[0]


@pytest.fixture
def usdc(setup):
    return setup[1]


@pytest.fixture
def claims(setup):
    return setup[2]


@pytest.fixture
def roles(setup):
    return setup[3]


@pytest.fixture
def proposed_id(engine):
    """Id of a PROPOSED campaign."""
    return engine.propose(SPONSOR, make_terms())


@pytest.fixture
def open_id(engine):
    """Id of a MINT_OPEN campaign."""
    return open_campaign(engine)


@pytest.fixture
def funded_id(engine, usdc, open_id):
    """Id of a THRESHOLD_MET campaign split 10/10 between bob and carol."""
    fund_fully(engine, usdc, open_id)
    return open_id


@pytest.fixture
def loaned_id(engine, funded_id):
    """Id of a LOANED campaign."""
    engine.draw_loan(BORROWER, funded_id)
    return funded_id


@pytest.fixture
def repaid_id(engine, usdc, loaned_id):
    """Id of a BURN_OPEN campaign repaid on schedule."""
    repay_all(engine, usdc, loaned_id)
    return loaned_id
