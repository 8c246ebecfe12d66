from django.urls import path

from .views import (
    AddBookView,
    AdminMessageView,
    BookDetailView,
    BookListView,
    BookReviewListView,
    CheckoutView,
    CurrentLoansCountView,
    CurrentLoansView,
    DecreaseQuantityView,
    DeleteBookView,
    HistoryListView,
    IncreaseQuantityView,
    IsCheckedOutByUserView,
    MessageView,
    OpenMessageListView,
    PostReviewView,
    RenewLoanView,
    ReturnView,
    UserReviewListedView,
)

urlpatterns = [
    path('books/', BookListView.as_view(), name='book_list'),
    path('books/<int:pk>/', BookDetailView.as_view(), name='book_detail'),
    path('books/<int:pk>/reviews/', BookReviewListView.as_view(), name='book_reviews'),
    path('books/secure/currentloans/', CurrentLoansView.as_view(), name='current_loans'),
    path('books/secure/currentloans/count/', CurrentLoansCountView.as_view(), name='current_loans_count'),
    path('books/secure/ischeckedout/byuser/', IsCheckedOutByUserView.as_view(), name='is_checked_out'),
    path('books/secure/checkout/', CheckoutView.as_view(), name='checkout'),
    path('books/secure/return/', ReturnView.as_view(), name='return'),
    path('books/secure/renew/loan/', RenewLoanView.as_view(), name='renew_loan'),
    path('histories/secure/', HistoryListView.as_view(), name='history_list'),
    path('reviews/secure/', PostReviewView.as_view(), name='post_review'),
    path('reviews/secure/user/book/', UserReviewListedView.as_view(), name='user_review_listed'),
    path('messages/secure/', MessageView.as_view(), name='messages'),
    path('messages/secure/admin/open/', OpenMessageListView.as_view(), name='open_messages'),
    path('messages/secure/admin/message/', AdminMessageView.as_view(), name='admin_message'),
    path('admin/secure/increase/book/quantity/', IncreaseQuantityView.as_view(), name='increase_quantity'),
    path('admin/secure/decrease/book/quantity/', DecreaseQuantityView.as_view(), name='decrease_quantity'),
    path('admin/secure/add/book/', AddBookView.as_view(), name='add_book'),
    path('admin/secure/delete/book/', DeleteBookView.as_view(), name='delete_book'),
]
