from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import Count, Q, Sum
from rest_framework import generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import APIException
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView

from apps.bookings.models import Reservation
from .models import CustomUser
from .serializers import CustomTokenObtainPairSerializer, RegisterSerializer, UserSerializer
import logging

logger = logging.getLogger(__name__)


class DuplicateUser(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'User with this email, phone, or national ID already exists'
    default_code = 'duplicate_user'


class RegisterView(generics.CreateAPIView):
    """Create a customer account and hand back a token pair."""
    serializer_class = RegisterSerializer
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'auth'

    def identifiers_taken(self, data):
        return CustomUser.objects.filter(
            Q(email__iexact=data['email']) | Q(phone=data['phone']) | Q(national_id=data['national_id'])
        ).exists()

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if self.identifiers_taken(data):
            logger.info(f"Registration rejected, identifiers already in use: {data['email']}")
            raise DuplicateUser()

        # Unique constraints catch a concurrent registration that passed the check above
        try:
            with transaction.atomic():
                user = serializer.save()
        except IntegrityError:
            logger.info(f"Registration lost a race on unique identifiers: {data['email']}")
            raise DuplicateUser()

        refresh = CustomTokenObtainPairSerializer.get_token(user)
        logger.info(f"Registered user {user.email} (id={user.id})")

        return Response({
            'message': 'Registration successful',
            'user': UserSerializer(user).data,
            'access': str(refresh.access_token),
            'refresh': str(refresh),
        }, status=status.HTTP_201_CREATED)


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer
    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'auth'


class LogoutView(APIView):
    """Handle user logout by blacklisting refresh token"""
    permission_classes = [AllowAny]

    def post(self, request):
        refresh_token = request.data.get("refresh")
        if not refresh_token:
            return Response(
                {"message": "Refresh token required."},
                status=status.HTTP_400_BAD_REQUEST
            )

        try:
            RefreshToken(refresh_token).blacklist()
        except TokenError:
            return Response(
                {"message": "Invalid token or already logged out"},
                status=status.HTTP_400_BAD_REQUEST
            )

        return Response({"message": "Logout successful"}, status=status.HTTP_200_OK)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_profile(request):
    return Response({
        'message': 'Profile retrieved successfully',
        'user': UserSerializer(request.user).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_stats(request):
    """Booking counters for the dashboard. Spend and hours count completed bookings only."""
    completed = Q(status=Reservation.Status.COMPLETED)
    stats = Reservation.objects.filter(user=request.user).aggregate(
        total_bookings=Count('id'),
        completed_bookings=Count('id', filter=completed),
        pending_bookings=Count('id', filter=Q(status=Reservation.Status.PENDING)),
        cancelled_bookings=Count('id', filter=Q(status=Reservation.Status.CANCELLED)),
        total_spent=Sum('final_price', filter=completed),
        total_hours=Sum('total_hours', filter=completed),
    )

    return Response({
        'message': 'User statistics retrieved successfully',
        'stats': {
            'total_bookings': stats['total_bookings'] or 0,
            'completed_bookings': stats['completed_bookings'] or 0,
            'pending_bookings': stats['pending_bookings'] or 0,
            'cancelled_bookings': stats['cancelled_bookings'] or 0,
            'total_spent': str(stats['total_spent'] or Decimal('0.00')),
            'total_hours': stats['total_hours'] or 0,
        },
    })
