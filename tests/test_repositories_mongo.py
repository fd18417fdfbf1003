"""MongoDB repository tests.

Run only when a server is available:
    MONGO_URI=mongodb://localhost:27017 pytest tests/test_repositories_mongo.py
"""

import os
import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from factories import NOON, make_transaction

# Check for MongoDB availability
MONGO_URI = os.environ.get("MONGO_URI")
SKIP_MONGO = MONGO_URI is None

pytestmark = pytest.mark.skipif(
    SKIP_MONGO, reason="MongoDB not available (MONGO_URI env var not set)"
)

if not SKIP_MONGO:
    from pymongo.errors import DuplicateKeyError

    from trustlens.repositories.interfaces import LedgerQuery
    from trustlens.repositories.mongo import (
        MongoBlacklistRegistry,
        MongoDatabase,
        MongoTransactionLedger,
    )


@pytest.fixture
def mongo_db():
    db_name = f"trustlens_test_{uuid.uuid4().hex[:8]}"
    db = MongoDatabase(MONGO_URI, db_name=db_name, timeout_ms=2000)
    db.initialize()
    yield db
    db.get_client().drop_database(db_name)
    db.close()


@pytest.fixture
def ledger(mongo_db):
    return MongoTransactionLedger(mongo_db)


@pytest.fixture
def blacklist(mongo_db):
    return MongoBlacklistRegistry(mongo_db)


class TestMongoTransactionLedger:
    def test_round_trip(self, ledger):
        ledger.append(
            make_transaction(
                "m1", amount="1234.56", anomalous=True, reasons=("Blacklisted IP address",)
            )
        )

        stored = ledger.get("m1")

        assert stored.amount == Decimal("1234.56")
        assert stored.reasons == ("Blacklisted IP address",)
        assert stored.timestamp == make_transaction().timestamp

    def test_unique_transaction_id(self, ledger):
        ledger.append(make_transaction("dup"))

        with pytest.raises(DuplicateKeyError):
            ledger.append(make_transaction("dup"))

    def test_query_filters_and_limit(self, ledger):
        for i in range(4):
            ledger.append(
                make_transaction(
                    f"t{i}",
                    sender="S1" if i % 2 == 0 else "S2",
                    timestamp=NOON + timedelta(minutes=i),
                )
            )

        by_sender = ledger.query(LedgerQuery(sender_account_number="S1"))
        recent = ledger.query(LedgerQuery(limit=2))

        assert [t.transaction_id for t in by_sender] == ["t0", "t2"]
        assert [t.transaction_id for t in recent] == ["t2", "t3"]

    def test_latest_and_clear(self, ledger):
        ledger.append(make_transaction("a"))
        ledger.append(make_transaction("b"))

        assert ledger.latest().transaction_id == "b"
        assert ledger.clear() == 2
        assert ledger.count() == 0


class TestMongoBlacklistRegistry:
    def test_add_is_idempotent(self, blacklist):
        assert blacklist.add("ACC-1", ("first",)) is True
        assert blacklist.add("ACC-1", ("second",)) is False

        assert blacklist.count() == 1
        assert blacklist.entries()[0].reasons == ("first",)

    def test_remove_and_list(self, blacklist):
        blacklist.seed(["ACC-1", "ACC-2"])

        assert blacklist.remove("ACC-1") is True
        assert blacklist.remove("ACC-1") is False
        assert blacklist.list() == {"ACC-2"}
