from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from lending.exceptions import (
    AlreadyCheckedOut,
    BookNotFound,
    DuplicateReview,
    InvalidOperation,
    MessageNotFound,
    NoCopiesAvailable,
    NotCheckedOut,
    QuantityAtFloor,
)
from lending.models import Book, Checkout, CheckoutQuerySet, History, Message, Review, ReviewQuerySet
from lending.services import CirculationService, MessageService, ReviewService


class UnseenCheckoutQuerySet(CheckoutQuerySet):
    """Pair lookup that misses rows committed by a concurrent request."""

    def for_pair(self, user_email, book_id):
        return self.none()


class UnseenReviewQuerySet(ReviewQuerySet):
    def for_pair(self, user_email, book_id):
        return self.none()


class CirculationServiceTests(TestCase):
    def setUp(self):
        self.service = CirculationService(loan_days=7)
        self.today = timezone.localdate()
        self.book = Book.objects.create(
            title='Test Book',
            author='John Doe',
            description='A test book',
            copies=1,
            copies_available=1,
            category='Fiction',
            img='cover.png',
        )

    def test_checkout_decrements_and_creates_checkout(self):
        """Checking out takes one copy and starts a seven day loan"""
        book = self.service.checkout('a@example.com', self.book.id)
        self.assertEqual(book.copies_available, 0)
        checkout = Checkout.objects.get(user_email='a@example.com', book=self.book)
        self.assertEqual(checkout.checkout_date, self.today)
        self.assertEqual(checkout.return_date, self.today + timedelta(days=7))

    def test_checkout_missing_book(self):
        with self.assertRaises(BookNotFound):
            self.service.checkout('a@example.com', 999)

    def test_checkout_twice_by_same_user(self):
        self.book.copies = 2
        self.book.copies_available = 2
        self.book.save()
        self.service.checkout('a@example.com', self.book.id)
        with self.assertRaises(AlreadyCheckedOut):
            self.service.checkout('a@example.com', self.book.id)
        self.book.refresh_from_db()
        self.assertEqual(self.book.copies_available, 1)
        self.assertEqual(Checkout.objects.count(), 1)

    def test_checkout_with_no_copies_left(self):
        """Single copy scenario: A gets it, B is refused, A returns it"""
        self.service.checkout('a@example.com', self.book.id)
        with self.assertRaises(NoCopiesAvailable):
            self.service.checkout('b@example.com', self.book.id)
        self.assertFalse(Checkout.objects.filter(user_email='b@example.com').exists())

        self.service.return_book('a@example.com', self.book.id)
        self.book.refresh_from_db()
        self.assertEqual(self.book.copies_available, 1)
        self.assertFalse(Checkout.objects.exists())
        history = History.objects.get()
        self.assertEqual(history.returned_date, self.today)

    def test_concurrent_duplicate_checkout_hits_unique_constraint(self):
        """A checkout the pair lookup missed is still refused and rolled back"""
        self.book.copies = 2
        self.book.copies_available = 2
        self.book.save()
        Checkout.objects.create(
            user_email='a@example.com',
            book=self.book,
            checkout_date=self.today,
            return_date=self.today + timedelta(days=7),
        )
        service = CirculationService(checkouts=UnseenCheckoutQuerySet(model=Checkout), loan_days=7)

        with self.assertRaises(AlreadyCheckedOut):
            service.checkout('a@example.com', self.book.id)

        self.book.refresh_from_db()
        self.assertEqual(self.book.copies_available, 2)
        self.assertEqual(Checkout.objects.count(), 1)

    def test_conditional_decrement_refuses_last_copy_twice(self):
        """The decrement itself refuses when no copy is left"""
        Checkout.objects.create(
            user_email='a@example.com',
            book=self.book,
            checkout_date=self.today,
            return_date=self.today + timedelta(days=7),
        )
        self.book.copies_available = 0
        self.book.save()
        service = CirculationService(checkouts=UnseenCheckoutQuerySet(model=Checkout), loan_days=7)

        with self.assertRaises(NoCopiesAvailable):
            service.checkout('a@example.com', self.book.id)

        self.book.refresh_from_db()
        self.assertEqual(self.book.copies, 1)
        self.assertEqual(self.book.copies_available, 0)
        self.assertEqual(Checkout.objects.count(), 1)

    def test_errors_share_one_boundary_type(self):
        for call in (
            lambda: self.service.checkout('a@example.com', 999),
            lambda: self.service.return_book('a@example.com', self.book.id),
            lambda: self.service.renew_loan('a@example.com', self.book.id),
            lambda: self.service.increase_quantity(999),
            lambda: self.service.delete_book(999),
        ):
            with self.assertRaises(InvalidOperation):
                call()

    def test_is_checked_out_by_user(self):
        self.assertFalse(self.service.is_checked_out_by_user('a@example.com', self.book.id))
        self.service.checkout('a@example.com', self.book.id)
        self.assertTrue(self.service.is_checked_out_by_user('a@example.com', self.book.id))
        self.assertFalse(self.service.is_checked_out_by_user('b@example.com', self.book.id))

    def test_return_appends_history_snapshot(self):
        Checkout.objects.create(
            user_email='a@example.com',
            book=self.book,
            checkout_date=self.today - timedelta(days=3),
            return_date=self.today + timedelta(days=4),
        )
        self.book.copies_available = 0
        self.book.save()

        history = self.service.return_book('a@example.com', self.book.id)

        self.book.refresh_from_db()
        self.assertEqual(self.book.copies_available, 1)
        self.assertFalse(Checkout.objects.exists())
        self.assertEqual(History.objects.count(), 1)
        self.assertEqual(history.user_email, 'a@example.com')
        self.assertEqual(history.checkout_date, self.today - timedelta(days=3))
        self.assertEqual(history.returned_date, self.today)
        self.assertEqual(history.title, 'Test Book')
        self.assertEqual(history.author, 'John Doe')
        self.assertEqual(history.description, 'A test book')
        self.assertEqual(history.img, 'cover.png')

    def test_return_without_checkout(self):
        with self.assertRaises(NotCheckedOut):
            self.service.return_book('a@example.com', self.book.id)
        self.book.refresh_from_db()
        self.assertEqual(self.book.copies_available, 1)
        self.assertFalse(History.objects.exists())

    def test_return_with_full_stock_is_logged(self):
        """A return that cannot raise copies_available past copies is logged"""
        Checkout.objects.create(
            user_email='a@example.com',
            book=self.book,
            checkout_date=self.today,
            return_date=self.today + timedelta(days=7),
        )
        with self.assertLogs('lending.services', level='WARNING') as logs:
            self.service.return_book('a@example.com', self.book.id)
        self.assertIn('already has all 1 copies available', logs.output[0])
        self.book.refresh_from_db()
        self.assertEqual(self.book.copies_available, 1)
        self.assertEqual(History.objects.count(), 1)

    def test_return_missing_book(self):
        with self.assertRaises(BookNotFound):
            self.service.return_book('a@example.com', 999)

    def test_renew_extends_loan(self):
        checkout = Checkout.objects.create(
            user_email='a@example.com',
            book=self.book,
            checkout_date=self.today - timedelta(days=5),
            return_date=self.today + timedelta(days=2),
        )
        self.service.renew_loan('a@example.com', self.book.id)
        checkout.refresh_from_db()
        self.assertEqual(checkout.return_date, self.today + timedelta(days=7))

    def test_renew_on_due_date(self):
        checkout = Checkout.objects.create(
            user_email='a@example.com',
            book=self.book,
            checkout_date=self.today - timedelta(days=7),
            return_date=self.today,
        )
        self.service.renew_loan('a@example.com', self.book.id)
        checkout.refresh_from_db()
        self.assertEqual(checkout.return_date, self.today + timedelta(days=7))

    def test_renew_overdue_loan_is_a_noop(self):
        """An overdue loan keeps its return date and no error is raised"""
        yesterday = self.today - timedelta(days=1)
        checkout = Checkout.objects.create(
            user_email='a@example.com',
            book=self.book,
            checkout_date=self.today - timedelta(days=8),
            return_date=yesterday,
        )
        result = self.service.renew_loan('a@example.com', self.book.id)
        checkout.refresh_from_db()
        self.assertEqual(checkout.return_date, yesterday)
        self.assertEqual(result.return_date, yesterday)

    def test_renew_without_checkout(self):
        with self.assertRaises(NotCheckedOut):
            self.service.renew_loan('a@example.com', self.book.id)

    def test_current_loans(self):
        second = Book.objects.create(title='Second', author='Jane', copies=1, copies_available=0)
        Checkout.objects.create(
            user_email='a@example.com',
            book=second,
            checkout_date=self.today - timedelta(days=10),
            return_date=self.today - timedelta(days=3),
        )
        Checkout.objects.create(
            user_email='a@example.com',
            book=self.book,
            checkout_date=self.today,
            return_date=self.today + timedelta(days=7),
        )
        Checkout.objects.create(
            user_email='b@example.com',
            book=self.book,
            checkout_date=self.today,
            return_date=self.today + timedelta(days=1),
        )

        loans = self.service.current_loans('a@example.com')

        self.assertEqual([loan.book.id for loan in loans], [self.book.id, second.id])
        self.assertEqual([loan.days_left for loan in loans], [7, -3])
        self.assertEqual(self.service.current_loans_count('a@example.com'), 2)
        self.assertEqual(self.service.current_loans_count('nobody@example.com'), 0)
        self.assertEqual(self.service.current_loans('nobody@example.com'), [])

    def test_current_loans_uses_one_book_query(self):
        for i in range(3):
            book = Book.objects.create(title=f'Book {i}', author='X', copies=1, copies_available=0)
            Checkout.objects.create(
                user_email='a@example.com',
                book=book,
                checkout_date=self.today,
                return_date=self.today + timedelta(days=i),
            )
        with self.assertNumQueries(2):
            loans = self.service.current_loans('a@example.com')
        self.assertEqual([loan.days_left for loan in loans], [0, 1, 2])

    def test_increase_quantity(self):
        self.service.increase_quantity(self.book.id)
        self.book.refresh_from_db()
        self.assertEqual(self.book.copies, 2)
        self.assertEqual(self.book.copies_available, 2)

    def test_increase_quantity_missing_book(self):
        with self.assertRaises(BookNotFound):
            self.service.increase_quantity(999)

    def test_decrease_quantity(self):
        self.service.decrease_quantity(self.book.id)
        self.book.refresh_from_db()
        self.assertEqual(self.book.copies, 0)
        self.assertEqual(self.book.copies_available, 0)

    def test_decrease_quantity_at_floor(self):
        self.service.checkout('a@example.com', self.book.id)
        with self.assertRaises(QuantityAtFloor):
            self.service.decrease_quantity(self.book.id)
        self.book.refresh_from_db()
        self.assertEqual(self.book.copies, 1)
        self.assertEqual(self.book.copies_available, 0)

    def test_decrease_quantity_missing_book(self):
        with self.assertRaises(BookNotFound):
            self.service.decrease_quantity(999)

    def test_add_book_makes_all_copies_available(self):
        book = self.service.add_book(
            title='New Book', author='Someone', description='New', copies=4, category='Science', img=''
        )
        self.assertEqual(book.copies, 4)
        self.assertEqual(book.copies_available, 4)
        self.assertEqual(Book.objects.count(), 2)

    def test_delete_book_cascades(self):
        Checkout.objects.create(
            user_email='a@example.com',
            book=self.book,
            checkout_date=self.today,
            return_date=self.today + timedelta(days=7),
        )
        Review.objects.create(user_email='a@example.com', book=self.book, rating=Decimal('4.5'))
        History.objects.create(
            user_email='b@example.com',
            checkout_date=self.today - timedelta(days=9),
            returned_date=self.today,
            title=self.book.title,
            author=self.book.author,
        )

        self.service.delete_book(self.book.id)

        self.assertFalse(Book.objects.filter(pk=self.book.id).exists())
        self.assertFalse(Checkout.objects.for_book(self.book.id).exists())
        self.assertFalse(Review.objects.for_book(self.book.id).exists())
        self.assertEqual(History.objects.count(), 1)

    def test_delete_missing_book(self):
        with self.assertRaises(BookNotFound):
            self.service.delete_book(999)

    def test_copies_stay_within_bounds(self):
        """copies_available never leaves [0, copies] across a mixed sequence"""
        self.service.increase_quantity(self.book.id)
        users = ['a@example.com', 'b@example.com', 'c@example.com']
        for user in users:
            try:
                self.service.checkout(user, self.book.id)
            except InvalidOperation:
                pass
            self.book.refresh_from_db()
            self.assertTrue(0 <= self.book.copies_available <= self.book.copies)
        for user in users:
            try:
                self.service.return_book(user, self.book.id)
            except InvalidOperation:
                pass
            self.book.refresh_from_db()
            self.assertTrue(0 <= self.book.copies_available <= self.book.copies)
        self.assertEqual(self.book.copies_available, 2)
        self.assertEqual(History.objects.count(), 2)


class ReviewServiceTests(TestCase):
    def setUp(self):
        self.service = ReviewService()
        self.book = Book.objects.create(title='Test Book', author='John Doe', copies=1, copies_available=1)

    def test_post_review(self):
        review = self.service.post_review('a@example.com', self.book.id, Decimal('4.5'), 'Great read')
        self.assertEqual(review.rating, Decimal('4.5'))
        self.assertEqual(review.review_description, 'Great read')
        self.assertEqual(review.date, timezone.localdate())
        self.assertTrue(self.service.user_review_listed('a@example.com', self.book.id))
        self.assertFalse(self.service.user_review_listed('b@example.com', self.book.id))

    def test_duplicate_review_rejected(self):
        self.service.post_review('a@example.com', self.book.id, Decimal('3'))
        with self.assertRaises(DuplicateReview):
            self.service.post_review('a@example.com', self.book.id, Decimal('5'))
        self.assertEqual(Review.objects.count(), 1)

    def test_concurrent_duplicate_review_hits_unique_constraint(self):
        """A review the pair lookup missed is still refused"""
        Review.objects.create(user_email='a@example.com', book=self.book, rating=Decimal('4'))
        service = ReviewService(reviews=UnseenReviewQuerySet(model=Review))
        with self.assertRaises(DuplicateReview):
            service.post_review('a@example.com', self.book.id, Decimal('2'))
        self.assertEqual(Review.objects.get().rating, Decimal('4'))

    def test_review_missing_book(self):
        with self.assertRaises(BookNotFound):
            self.service.post_review('a@example.com', 999, Decimal('3'))


class MessageServiceTests(TestCase):
    def setUp(self):
        self.service = MessageService()

    def test_post_and_respond(self):
        message = self.service.post_message('a@example.com', 'Hours', 'When do you open?')
        self.assertFalse(message.closed)

        answered = self.service.respond(message.id, 'admin@example.com', 'At nine.')

        message.refresh_from_db()
        self.assertTrue(message.closed)
        self.assertEqual(message.admin_email, 'admin@example.com')
        self.assertEqual(message.response, 'At nine.')
        self.assertEqual(answered.pk, message.pk)

    def test_respond_to_missing_message(self):
        with self.assertRaises(MessageNotFound):
            self.service.respond(999, 'admin@example.com', 'Hello')
        self.assertFalse(Message.objects.exists())
