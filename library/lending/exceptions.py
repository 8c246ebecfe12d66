from rest_framework import status
from rest_framework.exceptions import APIException


class InvalidOperation(APIException):
    """A lending rule was violated. Rendered as a 400 with a ``detail`` message."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid operation.'
    default_code = 'invalid_operation'


class BookNotFound(InvalidOperation):
    default_detail = 'Book not found.'
    default_code = 'book_not_found'


class AlreadyCheckedOut(InvalidOperation):
    default_detail = 'Book already checked out by user.'
    default_code = 'already_checked_out'


class NoCopiesAvailable(InvalidOperation):
    default_detail = 'No available copies of this book.'
    default_code = 'no_copies_available'


class NotCheckedOut(InvalidOperation):
    default_detail = 'Book is not checked out by user.'
    default_code = 'not_checked_out'


class QuantityAtFloor(InvalidOperation):
    default_detail = 'Book quantity is locked at zero.'
    default_code = 'quantity_at_floor'


class DuplicateReview(InvalidOperation):
    default_detail = 'Review already created.'
    default_code = 'duplicate_review'


class MessageNotFound(InvalidOperation):
    default_detail = 'Message not found.'
    default_code = 'message_not_found'
