from decimal import Decimal

from rest_framework import serializers

from .models import Book, Checkout, History, Message, Review


class BookSerializer(serializers.ModelSerializer):
    class Meta:
        model = Book
        fields = ['id', 'title', 'author', 'description', 'copies', 'copies_available', 'category', 'img']
        read_only_fields = fields


class AddBookSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    author = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    copies = serializers.IntegerField()
    category = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    img = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_copies(self, value):
        if value < 0:
            raise serializers.ValidationError("Copies cannot be negative.")
        return value


class BookIdQuerySerializer(serializers.Serializer):
    book_id = serializers.IntegerField(min_value=1)


class CheckoutSerializer(serializers.ModelSerializer):
    class Meta:
        model = Checkout
        fields = ['id', 'user_email', 'book_id', 'checkout_date', 'return_date']
        read_only_fields = fields


class CurrentLoanSerializer(serializers.Serializer):
    book = BookSerializer(read_only=True)
    days_left = serializers.IntegerField(read_only=True)


class HistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = History
        fields = ['id', 'user_email', 'checkout_date', 'returned_date', 'title', 'author', 'description', 'img']
        read_only_fields = fields


class ReviewSerializer(serializers.ModelSerializer):
    class Meta:
        model = Review
        fields = ['id', 'user_email', 'book_id', 'rating', 'review_description', 'date']
        read_only_fields = fields


class ReviewRequestSerializer(serializers.Serializer):
    book_id = serializers.IntegerField(min_value=1)
    rating = serializers.DecimalField(max_digits=2, decimal_places=1)
    review_description = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)

    def validate_rating(self, value):
        """
        Ratings go from half a star to five stars in half-star steps.
        """
        if value < Decimal('0.5') or value > Decimal('5') or (value * 2) % 1:
            raise serializers.ValidationError("Rating must be between 0.5 and 5 in steps of 0.5.")
        return value


class MessageSerializer(serializers.ModelSerializer):
    class Meta:
        model = Message
        fields = ['id', 'user_email', 'title', 'question', 'admin_email', 'response', 'closed']
        read_only_fields = ['id', 'user_email', 'admin_email', 'response', 'closed']


class AdminQuestionSerializer(serializers.Serializer):
    id = serializers.IntegerField(min_value=1)
    response = serializers.CharField()
