"""
Threaded concurrency checks against a file-backed SQLite database.

In-memory SQLite shares one connection, so these tests build their own app on
a temporary file to get real competing connections.
"""
import os
import random
import tempfile
import threading
import unittest

from pointhub import create_app
from pointhub.context import EngineContext
from pointhub.errors import InsufficientPoints
from pointhub.extensions import db
from pointhub.models import Campaign, Order, PointsTransaction, Product, User, Voucher
from pointhub.models.orders import ORDER_STATUS_PAID
from pointhub.models.points import POINTS_EARN
from pointhub.models.vouchers import VOUCHER_STATUS_USED
from pointhub.services import order_service, voucher_service
from pointhub.services.pricing_service import CartItem


class ConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"timeout": 30}},
            "BCRYPT_ROUNDS": 4,
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            db.session.add(Campaign(name="Concurrency Campaign", accrual_per=10000,
                                    discount_cap_pct=50, expiry_days=90, is_active=True))
            user = User(email="concurrent@demo.io", password_hash="x", role="user", points_balance=150)
            product = Product(name="Tumbler PointHub", price=150000, stock=10)
            db.session.add_all([user, product])
            db.session.commit()
            self.user_id = user.id
            self.cart = [CartItem(product_id=product.id, product_name=product.name, price=product.price, quantity=1)]

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _run_threads(self, target, count):
        results = []
        errors = []
        lock = threading.Lock()

        def worker(index):
            with self.app.app_context():
                try:
                    value = target(index)
                    with lock:
                        results.append(value)
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

    def test_concurrent_redemptions_cannot_overspend(self):
        def redeem(index):
            voucher = voucher_service.redeem_voucher(
                self.user_id, 100, ctx=EngineContext(rng=random.Random(index))
            )
            return voucher.id

        results, errors = self._run_threads(redeem, 6)

        self.assertEqual(len(results), 1)
        self.assertEqual(len(errors), 5)
        self.assertTrue(all(isinstance(exc, InsufficientPoints) for exc in errors))

        with self.app.app_context():
            self.assertEqual(db.session.get(User, self.user_id).points_balance, 50)
            self.assertEqual(db.session.query(Voucher).count(), 1)

    def test_concurrent_payment_confirmation_credits_once(self):
        with self.app.app_context():
            user = db.session.get(User, self.user_id)
            order = order_service.checkout(self.cart, ctx=EngineContext(user=user))
            order_id = order.id

        def confirm(_index):
            return order_service.confirm_payment(order_id).status

        results, errors = self._run_threads(confirm, 8)

        self.assertFalse(errors)
        self.assertEqual(results, [ORDER_STATUS_PAID] * 8)

        with self.app.app_context():
            self.assertEqual(db.session.get(User, self.user_id).points_balance, 165)
            earns = db.session.query(PointsTransaction).filter_by(
                order_id=order_id, transaction_type=POINTS_EARN
            ).count()
            self.assertEqual(earns, 1)

    def test_voucher_discounts_only_one_concurrent_checkout(self):
        with self.app.app_context():
            code = voucher_service.redeem_voucher(self.user_id, 100, ctx=EngineContext()).code

        def buy(_index):
            user = db.session.get(User, self.user_id)
            order = order_service.checkout(self.cart, code, ctx=EngineContext(user=user))
            return order.voucher_discount

        results, errors = self._run_threads(buy, 5)

        self.assertFalse(errors)
        self.assertEqual(sorted(results), [0, 0, 0, 0, 50000])

        with self.app.app_context():
            voucher = db.session.query(Voucher).filter_by(code=code).one()
            self.assertEqual(voucher.status, VOUCHER_STATUS_USED)
            discounted = db.session.query(Order).filter(Order.voucher_discount > 0).one()
            self.assertEqual(voucher.order_id, discounted.id)


if __name__ == "__main__":
    unittest.main()
