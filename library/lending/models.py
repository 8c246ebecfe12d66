from django.db import models
from django.utils import timezone


class Book(models.Model):
    title = models.CharField(max_length=200)
    author = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    copies = models.PositiveIntegerField(default=0)
    copies_available = models.PositiveIntegerField(default=0)
    category = models.CharField(max_length=50, blank=True)
    img = models.TextField(blank=True)

    class Meta:
        ordering = ['id']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(copies_available__lte=models.F('copies')),
                name='copies_available_lte_copies',
            ),
        ]

    def __str__(self):
        return self.title


class CheckoutQuerySet(models.QuerySet):
    def for_user(self, user_email):
        return self.filter(user_email=user_email)

    def for_pair(self, user_email, book_id):
        return self.filter(user_email=user_email, book_id=book_id)

    def for_book(self, book_id):
        return self.filter(book_id=book_id)


class Checkout(models.Model):
    user_email = models.EmailField(max_length=254)
    book = models.ForeignKey(Book, on_delete=models.CASCADE, related_name='checkouts')
    checkout_date = models.DateField()
    return_date = models.DateField()

    objects = CheckoutQuerySet.as_manager()

    class Meta:
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(fields=['user_email', 'book'], name='unique_active_checkout'),
        ]

    def __str__(self):
        return f"{self.user_email} has {self.book_id} until {self.return_date}"

    def is_overdue(self, today=None):
        today = today or timezone.localdate()
        return self.return_date < today


class History(models.Model):
    """Snapshot of a finished loan, kept after the book itself is gone."""

    user_email = models.EmailField(max_length=254, db_index=True)
    checkout_date = models.DateField()
    returned_date = models.DateField()
    title = models.CharField(max_length=200)
    author = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    img = models.TextField(blank=True)

    class Meta:
        ordering = ['-returned_date', '-id']
        verbose_name_plural = 'histories'

    def __str__(self):
        return f"{self.user_email} returned {self.title} on {self.returned_date}"


class ReviewQuerySet(models.QuerySet):
    def for_pair(self, user_email, book_id):
        return self.filter(user_email=user_email, book_id=book_id)

    def for_book(self, book_id):
        return self.filter(book_id=book_id)


class Review(models.Model):
    user_email = models.EmailField(max_length=254)
    book = models.ForeignKey(Book, on_delete=models.CASCADE, related_name='reviews')
    rating = models.DecimalField(max_digits=2, decimal_places=1)
    review_description = models.TextField(null=True, blank=True)
    date = models.DateField(default=timezone.localdate)

    objects = ReviewQuerySet.as_manager()

    class Meta:
        ordering = ['-date', '-id']
        constraints = [
            models.UniqueConstraint(fields=['user_email', 'book'], name='unique_review_per_user'),
        ]

    def __str__(self):
        return f"{self.user_email} rated {self.book_id}: {self.rating}"


class Message(models.Model):
    user_email = models.EmailField(max_length=254, db_index=True)
    title = models.CharField(max_length=200)
    question = models.TextField()
    admin_email = models.EmailField(max_length=254, null=True, blank=True)
    response = models.TextField(null=True, blank=True)
    closed = models.BooleanField(default=False)

    class Meta:
        ordering = ['id']

    def __str__(self):
        return self.title
