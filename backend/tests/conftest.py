"""
Pytest fixtures for bazaar backend tests.

Provides test database setup, product factories, and test client.
"""

import pytest
from sqlalchemy import text

from bazaar import create_app
from bazaar.extensions import db
from bazaar.services import catalog_service, qa_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DEFAULT_LOW_STOCK_THRESHOLD': 10,
        'LEDGER_RECENT_LIMIT': 50,
        'LEDGER_MAX_LIMIT': 500,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_product(db_session):
    """
    Factory for registered products.

    Goes through catalog_service so opening stock is backed by a ledger entry.
    """
    counter = {"n": 0}

    def _make(stock: int = 25, *, threshold: int = 10, seller_id: str = "seller-1", name: str | None = None):
        counter["n"] += 1
        return catalog_service.register_product(
            name or f"Product {counter['n']}",
            seller_id,
            initial_stock=stock,
            low_stock_threshold=threshold,
        )

    return _make


@pytest.fixture(scope='function')
def product(make_product):
    """Product with 25 units, threshold 10."""
    return make_product(25)


@pytest.fixture(scope='function')
def assessment(product):
    """Fresh assessment in PENDING_DIGITAL_REVIEW for `product`."""
    return qa_service.submit_for_review(product.id, "Weaver Co.")


@pytest.fixture(scope='function')
def assessment_in_review(assessment):
    """Assessment advanced to IN_QUALITY_REVIEW."""
    qa_service.approve_for_sample(assessment.id)
    return qa_service.submit_sample(assessment.id, "Courier Pickup")


@pytest.fixture(scope='function')
def reject_product_writes(db_session):
    """
    Make the product store refuse updates of one column.

    Installs a SQLite trigger that aborts any UPDATE OF <column> on products,
    the way an unavailable or constraint-enforcing store would. Dropped after
    the test.
    """
    installed = []

    def _install(column: str):
        name = f"reject_product_{column}_write"
        db_session.execute(text(
            f"CREATE TRIGGER {name} BEFORE UPDATE OF {column} ON products "
            f"BEGIN SELECT RAISE(ABORT, 'product store offline'); END"
        ))
        db_session.commit()
        installed.append(name)

    yield _install

    db_session.rollback()
    for name in installed:
        db_session.execute(text(f"DROP TRIGGER IF EXISTS {name}"))
    db_session.commit()
