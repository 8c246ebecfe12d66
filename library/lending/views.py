from django_filters.rest_framework import DjangoFilterBackend
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import filters, generics, status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Book, History, Message, Review
from .permissions import IsLibraryAdmin
from .serializers import (
    AddBookSerializer,
    AdminQuestionSerializer,
    BookIdQuerySerializer,
    BookSerializer,
    CheckoutSerializer,
    CurrentLoanSerializer,
    HistorySerializer,
    MessageSerializer,
    ReviewRequestSerializer,
    ReviewSerializer,
)
from .services import CirculationService, MessageService, ReviewService

book_id_param = openapi.Parameter(
    'book_id', openapi.IN_QUERY, description='Book id', type=openapi.TYPE_INTEGER, required=True
)


circulation_service = CirculationService()
review_service = ReviewService()
message_service = MessageService()


def get_book_id(request):
    serializer = BookIdQuerySerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data['book_id']


class CirculationView(APIView):
    """Base for views that act on loans and stock through the shared service."""

    permission_classes = [IsAuthenticated]
    circulation = circulation_service


class BookListView(generics.ListAPIView):
    queryset = Book.objects.all()
    serializer_class = BookSerializer
    permission_classes = [AllowAny]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['category']
    search_fields = ['title', 'author']


class BookDetailView(generics.RetrieveAPIView):
    queryset = Book.objects.all()
    serializer_class = BookSerializer
    permission_classes = [AllowAny]


class BookReviewListView(generics.ListAPIView):
    serializer_class = ReviewSerializer
    permission_classes = [AllowAny]

    def get_queryset(self):
        return Review.objects.for_book(self.kwargs['pk'])


class CurrentLoansView(CirculationView):
    @swagger_auto_schema(responses={200: CurrentLoanSerializer(many=True)})
    def get(self, request):
        loans = self.circulation.current_loans(request.user.email)
        return Response(CurrentLoanSerializer(loans, many=True).data)


class CurrentLoansCountView(CirculationView):
    def get(self, request):
        return Response(self.circulation.current_loans_count(request.user.email))


class IsCheckedOutByUserView(CirculationView):
    @swagger_auto_schema(manual_parameters=[book_id_param])
    def get(self, request):
        book_id = get_book_id(request)
        return Response(self.circulation.is_checked_out_by_user(request.user.email, book_id))


class CheckoutView(CirculationView):
    @swagger_auto_schema(manual_parameters=[book_id_param], responses={200: BookSerializer})
    def put(self, request):
        book = self.circulation.checkout(request.user.email, get_book_id(request))
        return Response(BookSerializer(book).data)


class ReturnView(CirculationView):
    @swagger_auto_schema(manual_parameters=[book_id_param], responses={200: HistorySerializer})
    def put(self, request):
        history = self.circulation.return_book(request.user.email, get_book_id(request))
        return Response(HistorySerializer(history).data)


class RenewLoanView(CirculationView):
    @swagger_auto_schema(manual_parameters=[book_id_param], responses={200: CheckoutSerializer})
    def put(self, request):
        checkout = self.circulation.renew_loan(request.user.email, get_book_id(request))
        return Response(CheckoutSerializer(checkout).data)


class HistoryListView(generics.ListAPIView):
    serializer_class = HistorySerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return History.objects.filter(user_email=self.request.user.email)


class PostReviewView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(request_body=ReviewRequestSerializer, responses={201: ReviewSerializer})
    def post(self, request):
        serializer = ReviewRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = review_service.post_review(request.user.email, **serializer.validated_data)
        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)


class UserReviewListedView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(manual_parameters=[book_id_param])
    def get(self, request):
        return Response(review_service.user_review_listed(request.user.email, get_book_id(request)))


class MessageView(generics.ListCreateAPIView):
    serializer_class = MessageSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return Message.objects.filter(user_email=self.request.user.email)

    def perform_create(self, serializer):
        serializer.instance = message_service.post_message(
            self.request.user.email,
            serializer.validated_data['title'],
            serializer.validated_data['question'],
        )


class OpenMessageListView(generics.ListAPIView):
    queryset = Message.objects.filter(closed=False)
    serializer_class = MessageSerializer
    permission_classes = [IsLibraryAdmin]


class AdminMessageView(APIView):
    permission_classes = [IsLibraryAdmin]

    @swagger_auto_schema(request_body=AdminQuestionSerializer, responses={200: MessageSerializer})
    def put(self, request):
        serializer = AdminQuestionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        message = message_service.respond(
            serializer.validated_data['id'],
            request.user.email,
            serializer.validated_data['response'],
        )
        return Response(MessageSerializer(message).data)


class IncreaseQuantityView(CirculationView):
    permission_classes = [IsLibraryAdmin]

    @swagger_auto_schema(manual_parameters=[book_id_param])
    def put(self, request):
        self.circulation.increase_quantity(get_book_id(request))
        return Response(status=status.HTTP_204_NO_CONTENT)


class DecreaseQuantityView(CirculationView):
    permission_classes = [IsLibraryAdmin]

    @swagger_auto_schema(manual_parameters=[book_id_param])
    def put(self, request):
        self.circulation.decrease_quantity(get_book_id(request))
        return Response(status=status.HTTP_204_NO_CONTENT)


class AddBookView(CirculationView):
    permission_classes = [IsLibraryAdmin]

    @swagger_auto_schema(request_body=AddBookSerializer, responses={201: BookSerializer})
    def post(self, request):
        serializer = AddBookSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        book = self.circulation.add_book(**serializer.validated_data)
        return Response(BookSerializer(book).data, status=status.HTTP_201_CREATED)


class DeleteBookView(CirculationView):
    permission_classes = [IsLibraryAdmin]

    @swagger_auto_schema(manual_parameters=[book_id_param])
    def delete(self, request):
        self.circulation.delete_book(get_book_id(request))
        return Response(status=status.HTTP_204_NO_CONTENT)
