# Overview: Threaded lost-update tests on a file-backed SQLite store.

"""
Concurrency tests for the stock ledger and QA transitions.

Each worker thread gets its own app context (and therefore its own session
and connection); the file-backed database makes the writers really contend.
"""
import os
import tempfile
import threading
import unittest

from bazaar import create_app
from bazaar.errors import AssessmentConflict, InsufficientStock, InvalidTransition
from bazaar.extensions import db
from bazaar.models import InventoryLedgerEntry, Product, QAAssessment
from bazaar.services import catalog_service, checkout_service, ledger_service, qa_service


class ConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"timeout": 30}},
            "DB_RETRY_ATTEMPTS": 10,
            "LOG_LEVEL": "WARNING",
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            product = catalog_service.register_product("Concurrent Product", "seller-1", initial_stock=5)
            self.product_id = product.id

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _run_workers(self, target, count):
        results = []
        errors = []
        lock = threading.Lock()

        def worker(index):
            with self.app.app_context():
                try:
                    outcome = target(index)
                    with lock:
                        results.append(outcome)
                except Exception as exc:
                    with lock:
                        errors.append(exc)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results, errors

    def test_concurrent_deductions_never_oversell(self):
        """10 buyers, 5 units: exactly 5 sales succeed."""
        results, errors = self._run_workers(
            lambda i: ledger_service.deduct_stock(self.product_id, 1, "ONLINE_SALE", f"ORD-{i}").id,
            10,
        )

        self.assertEqual(len(results), 5)
        self.assertEqual(len(errors), 5)
        self.assertTrue(all(isinstance(e, InsufficientStock) for e in errors), errors)

        with self.app.app_context():
            product = db.session.get(Product, self.product_id)
            self.assertEqual(product.stock, 0)

            deductions = (
                db.session.query(InventoryLedgerEntry)
                .filter_by(product_id=self.product_id, change_type="DEDUCTION")
                .count()
            )
            self.assertEqual(deductions, 5)
            self.assertTrue(ledger_service.reconcile_stock(self.product_id)["consistent"])

    def test_concurrent_additions_are_not_lost(self):
        results, errors = self._run_workers(
            lambda i: ledger_service.add_stock(self.product_id, 2, "Restock").id,
            8,
        )

        self.assertFalse(errors)
        self.assertEqual(len(results), 8)

        with self.app.app_context():
            report = ledger_service.reconcile_stock(self.product_id)
            self.assertEqual(report["live_stock"], 5 + 16)
            self.assertTrue(report["consistent"])
            self.assertEqual(report["broken_links"], [])

    def test_concurrent_checkouts_all_or_nothing(self):
        with self.app.app_context():
            other = catalog_service.register_product("Second Product", "seller-1", initial_stock=3)
            other_id = other.id

        def order(i):
            return len(checkout_service.checkout(
                [
                    {"product_id": self.product_id, "quantity": 1},
                    {"product_id": other_id, "quantity": 1},
                ],
                f"ORD-{i}",
            ))

        results, errors = self._run_workers(order, 6)

        # The second product only covers 3 orders
        self.assertEqual(results, [2, 2, 2])
        self.assertTrue(all(isinstance(e, InsufficientStock) for e in errors), errors)

        with self.app.app_context():
            self.assertEqual(db.session.get(Product, self.product_id).stock, 2)
            self.assertEqual(db.session.get(Product, other_id).stock, 0)
            self.assertTrue(ledger_service.reconcile_stock(self.product_id)["consistent"])
            self.assertTrue(ledger_service.reconcile_stock(other_id)["consistent"])

    def test_single_active_assessment_under_race(self):
        results, errors = self._run_workers(
            lambda i: qa_service.submit_for_review(self.product_id, f"Vendor {i}").id,
            6,
        )

        self.assertEqual(len(results), 1)
        self.assertTrue(all(isinstance(e, AssessmentConflict) for e in errors), errors)

        with self.app.app_context():
            self.assertEqual(
                db.session.query(QAAssessment).filter_by(product_id=self.product_id).count(), 1
            )

    def test_competing_admin_approvals(self):
        with self.app.app_context():
            assessment_id = qa_service.submit_for_review(self.product_id, "Weaver Co.").id

        results, errors = self._run_workers(
            lambda i: qa_service.approve_for_sample(assessment_id).status,
            6,
        )

        # The first approval wins; the rest see WAITING_FOR_SAMPLE
        self.assertEqual(results, ["WAITING_FOR_SAMPLE"])
        self.assertTrue(all(isinstance(e, InvalidTransition) for e in errors), errors)

        with self.app.app_context():
            final = db.session.get(QAAssessment, assessment_id)
            product = db.session.get(Product, self.product_id)
            self.assertEqual(final.status, "WAITING_FOR_SAMPLE")
            self.assertEqual(product.approval_status, "pending")


if __name__ == "__main__":
    unittest.main()
