from django.contrib import admin

from .models import Book, Checkout, History, Message, Review


class ReadOnlyAdmin(admin.ModelAdmin):
    """Checkouts and history are written only by the lending service."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Book)
class BookAdmin(admin.ModelAdmin):
    list_display = ['id', 'title', 'author', 'category', 'copies', 'copies_available']
    search_fields = ['title', 'author']
    list_filter = ['category']

    def get_readonly_fields(self, request, obj=None):
        # Stock on existing books changes only through the quantity endpoints.
        if obj is None:
            return ['copies_available']
        return ['copies', 'copies_available']

    def save_model(self, request, obj, form, change):
        if not change:
            obj.copies_available = obj.copies
        super().save_model(request, obj, form, change)


@admin.register(Checkout)
class CheckoutAdmin(ReadOnlyAdmin):
    list_display = ['user_email', 'book', 'checkout_date', 'return_date']
    search_fields = ['user_email']


@admin.register(History)
class HistoryAdmin(ReadOnlyAdmin):
    list_display = ['user_email', 'title', 'checkout_date', 'returned_date']
    search_fields = ['user_email', 'title']


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ['user_email', 'book', 'rating', 'date']


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ['user_email', 'title', 'closed', 'admin_email']
    list_filter = ['closed']
