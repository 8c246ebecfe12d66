import logging
from dataclasses import dataclass
from datetime import timedelta

from django.conf import settings
from django.db import IntegrityError, models, transaction
from django.utils import timezone

from .exceptions import (
    AlreadyCheckedOut,
    BookNotFound,
    DuplicateReview,
    MessageNotFound,
    NoCopiesAvailable,
    NotCheckedOut,
    QuantityAtFloor,
)
from .models import Book, Checkout, History, Message, Review

logger = logging.getLogger(__name__)


@dataclass
class CurrentLoan:
    book: Book
    days_left: int


class CirculationService:
    """Keeps copy counts, active checkouts and loan history consistent.

    Copy counters are only ever changed with conditional ``UPDATE`` statements
    so two requests racing for the last copy cannot both win.
    """

    def __init__(self, books=None, checkouts=None, histories=None, reviews=None, loan_days=None):
        self.books = books if books is not None else Book.objects
        self.checkouts = checkouts if checkouts is not None else Checkout.objects
        self.histories = histories if histories is not None else History.objects
        self.reviews = reviews if reviews is not None else Review.objects
        if loan_days is None:
            loan_days = settings.LIBRARY['LOAN_DAYS']
        self.loan_period = timedelta(days=loan_days)

    def _get_book(self, book_id):
        try:
            return self.books.get(pk=book_id)
        except Book.DoesNotExist:
            logger.warning("Book %s not found", book_id)
            raise BookNotFound()

    def checkout(self, user_email, book_id):
        today = timezone.localdate()
        try:
            with transaction.atomic():
                book = self._get_book(book_id)
                if self.checkouts.for_pair(user_email, book_id).exists():
                    logger.warning("%s already has book %s checked out", user_email, book_id)
                    raise AlreadyCheckedOut()
                taken = self.books.filter(pk=book_id, copies_available__gt=0).update(
                    copies_available=models.F('copies_available') - 1
                )
                if not taken:
                    logger.warning("No copies of book %s left for %s", book_id, user_email)
                    raise NoCopiesAvailable()
                self.checkouts.create(
                    user_email=user_email,
                    book=book,
                    checkout_date=today,
                    return_date=today + self.loan_period,
                )
        except IntegrityError as exc:
            # A concurrent checkout of the same pair committed first.
            raise AlreadyCheckedOut() from exc
        book.refresh_from_db()
        logger.info("%s checked out book %s, %s copies left", user_email, book_id, book.copies_available)
        return book

    def is_checked_out_by_user(self, user_email, book_id):
        return self.checkouts.for_pair(user_email, book_id).exists()

    def return_book(self, user_email, book_id):
        today = timezone.localdate()
        with transaction.atomic():
            book = self._get_book(book_id)
            checkout = self.checkouts.for_pair(user_email, book_id).first()
            if checkout is None:
                logger.warning("%s tried to return book %s without a checkout", user_email, book_id)
                raise NotCheckedOut()
            restored = self.books.filter(pk=book_id, copies_available__lt=models.F('copies')).update(
                copies_available=models.F('copies_available') + 1
            )
            if not restored:
                logger.warning(
                    "Book %s already has all %s copies available, return by %s not counted",
                    book_id, book.copies, user_email,
                )
            checkout.delete()
            history = self.histories.create(
                user_email=user_email,
                checkout_date=checkout.checkout_date,
                returned_date=today,
                title=book.title,
                author=book.author,
                description=book.description,
                img=book.img,
            )
        logger.info("%s returned book %s", user_email, book_id)
        return history

    def renew_loan(self, user_email, book_id):
        today = timezone.localdate()
        with transaction.atomic():
            checkout = self.checkouts.select_for_update().for_pair(user_email, book_id).first()
            if checkout is None:
                logger.warning("%s tried to renew book %s without a checkout", user_email, book_id)
                raise NotCheckedOut()
            if checkout.is_overdue(today):
                logger.info(
                    "Loan of book %s by %s is overdue since %s, not renewed",
                    book_id, user_email, checkout.return_date,
                )
                return checkout
            checkout.return_date = today + self.loan_period
            checkout.save(update_fields=['return_date'])
        logger.info("%s renewed book %s until %s", user_email, book_id, checkout.return_date)
        return checkout

    def current_loans_count(self, user_email):
        return self.checkouts.for_user(user_email).count()

    def current_loans(self, user_email):
        today = timezone.localdate()
        checkouts = list(self.checkouts.for_user(user_email))
        by_book = {checkout.book_id: checkout for checkout in checkouts}
        books = self.books.in_bulk(list(by_book))
        loans = []
        for book_id in sorted(books):
            checkout = by_book[book_id]
            loans.append(CurrentLoan(book=books[book_id], days_left=(checkout.return_date - today).days))
        return loans

    def increase_quantity(self, book_id):
        with transaction.atomic():
            updated = self.books.filter(pk=book_id).update(
                copies=models.F('copies') + 1,
                copies_available=models.F('copies_available') + 1,
            )
        if not updated:
            logger.warning("Book %s not found", book_id)
            raise BookNotFound()
        logger.info("Increased quantity of book %s", book_id)

    def decrease_quantity(self, book_id):
        with transaction.atomic():
            updated = self.books.filter(pk=book_id, copies__gt=0, copies_available__gt=0).update(
                copies=models.F('copies') - 1,
                copies_available=models.F('copies_available') - 1,
            )
            if not updated:
                self._get_book(book_id)
                logger.warning("Quantity of book %s is locked", book_id)
                raise QuantityAtFloor()
        logger.info("Decreased quantity of book %s", book_id)

    def add_book(self, title, author, description='', copies=0, category='', img=''):
        book = self.books.create(
            title=title,
            author=author,
            description=description,
            copies=copies,
            copies_available=copies,
            category=category,
            img=img,
        )
        logger.info("Added book %s (%s) with %s copies", book.pk, title, copies)
        return book

    def delete_book(self, book_id):
        with transaction.atomic():
            book = self._get_book(book_id)
            book.delete()
            self.checkouts.for_book(book_id).delete()
            self.reviews.for_book(book_id).delete()
        logger.info("Deleted book %s", book_id)


class ReviewService:
    def __init__(self, books=None, reviews=None):
        self.books = books if books is not None else Book.objects
        self.reviews = reviews if reviews is not None else Review.objects

    def post_review(self, user_email, book_id, rating, review_description=None):
        if not self.books.filter(pk=book_id).exists():
            raise BookNotFound()
        if self.reviews.for_pair(user_email, book_id).exists():
            logger.warning("%s already reviewed book %s", user_email, book_id)
            raise DuplicateReview()
        try:
            with transaction.atomic():
                review = self.reviews.create(
                    user_email=user_email,
                    book_id=book_id,
                    rating=rating,
                    review_description=review_description,
                    date=timezone.localdate(),
                )
        except IntegrityError as exc:
            raise DuplicateReview() from exc
        logger.info("%s reviewed book %s with %s", user_email, book_id, rating)
        return review

    def user_review_listed(self, user_email, book_id):
        return self.reviews.for_pair(user_email, book_id).exists()


class MessageService:
    def __init__(self, messages=None):
        self.messages = messages if messages is not None else Message.objects

    def post_message(self, user_email, title, question):
        message = self.messages.create(user_email=user_email, title=title, question=question)
        logger.info("%s posted message %s", user_email, message.pk)
        return message

    def respond(self, message_id, admin_email, response):
        with transaction.atomic():
            try:
                message = self.messages.select_for_update().get(pk=message_id)
            except Message.DoesNotExist:
                logger.warning("Message %s not found", message_id)
                raise MessageNotFound()
            message.admin_email = admin_email
            message.response = response
            message.closed = True
            message.save(update_fields=['admin_email', 'response', 'closed'])
        logger.info("%s answered message %s", admin_email, message_id)
        return message
