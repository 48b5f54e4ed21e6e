import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.views import TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from django.contrib.auth import authenticate, get_user_model
from django.contrib.auth.models import update_last_login
from django.core.exceptions import ObjectDoesNotExist
from django.shortcuts import get_object_or_404
from django.utils import timezone
from .models import AuditLog, ROLE_PERMISSIONS
from .permissions import TenantIsolation, require_permission
from .serializers import (
    UserSerializer, UserSelfUpdateSerializer, UserCreateSerializer, UserSummarySerializer,
    PasswordChangeSerializer, TenantSerializer, AuditLogSerializer
)
from .utils import create_audit_log, paginated_response, parse_bool

logger = logging.getLogger('backend.core')

User = get_user_model()


class QMSTokenObtainPairSerializer(TokenObtainPairSerializer):
    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['email'] = user.email
        token['tenant_id'] = user.tenant_id
        token['role'] = user.role
        return token


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh serializer that handles deleted users gracefully"""
    def validate(self, attrs):
        try:
            refresh = self.token_class(attrs['refresh'])
            User.objects.get(pk=refresh.payload.get('user_id'))
            return super().validate(attrs)
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')
        except TokenError:
            raise InvalidToken('Token is invalid or expired.')


class CustomTokenRefreshView(TokenRefreshView):
    """Token refresh view that handles deleted users gracefully"""
    serializer_class = CustomTokenRefreshSerializer


def tenant_payload(tenant):
    return {
        'name': tenant.name,
        'subdomain': tenant.subdomain,
        'branding': tenant.branding,
    }


@api_view(['POST'])
@permission_classes([AllowAny])
def login(request):
    """Log in with email and password, returning tokens and tenant info"""
    email = (request.data.get('email') or '').strip().lower()
    password = request.data.get('password')

    if not email or not password:
        return Response({'error': 'Please provide email and password'}, status=status.HTTP_400_BAD_REQUEST)

    user = authenticate(request, email=email, password=password)
    if user is None or user.tenant_id is None:
        logger.warning(f"Failed login attempt for {email}")
        return Response({'error': 'Invalid credentials'}, status=status.HTTP_401_UNAUTHORIZED)

    tenant = user.tenant
    if not tenant.is_active:
        logger.warning(f"Login refused for {email}: tenant {tenant.subdomain} is inactive")
        return Response({'error': 'Organization account is disabled'}, status=status.HTTP_403_FORBIDDEN)

    update_last_login(None, user)
    refresh = QMSTokenObtainPairSerializer.get_token(user)
    logger.info(f"User {user.email} logged in (tenant {tenant.subdomain})")

    return Response({
        'access': str(refresh.access_token),
        'refresh': str(refresh),
        'tenant_id': tenant.id,
        'user': {
            'id': user.id,
            'email': user.email,
            'name': user.get_full_name(),
            'role': user.role,
        },
        'tenant': tenant_payload(tenant),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout(request):
    """Stateless tokens: the client discards them"""
    logger.info(f"User {request.user.email} logged out")
    return Response({'message': 'Logged out successfully'})


@api_view(['GET'])
@permission_classes([IsAuthenticated, TenantIsolation])
def user_me(request):
    """Get current user with permission flags and tenant"""
    data = UserSerializer(request.user).data
    data['tenant'] = TenantSerializer(request.user.tenant).data
    return Response(data)


# User views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, TenantIsolation, require_permission('can_manage_users')])
def user_list_create(request):
    """List tenant users or create a new user"""
    try:
        if request.method == 'GET':
            users = User.objects.filter(tenant_id=request.user.tenant_id)
            role = request.query_params.get('role')
            if role:
                users = users.filter(role=role)
            department = request.query_params.get('department')
            if department:
                users = users.filter(department=department)
            is_active = parse_bool(request.query_params.get('is_active'))
            if is_active is not None:
                users = users.filter(is_active=is_active)
            serializer = UserSerializer(users, many=True)
            return Response(serializer.data)

        serializer = UserCreateSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save(tenant=request.user.tenant)
            create_audit_log(request, 'create', 'User', user.id, object_reference=user.email,
                             changes={'role': user.role})
            logger.info(f"User {user.email} created by {request.user.email}")
            return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
        logger.warning(f"User creation validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Unexpected error in user_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


def update_user(request, user, partial):
    """Apply an update; only user managers may touch role/status/permission fields"""
    serializer_class = UserSerializer if request.user.has_qms_permission('can_manage_users') else UserSelfUpdateSerializer
    before_role = user.role
    serializer = serializer_class(user, data=request.data, partial=partial)
    if serializer.is_valid():
        serializer.save()
        changes = {}
        if before_role != user.role:
            changes['role'] = {'old': before_role, 'new': user.role}
        create_audit_log(request, 'update', 'User', user.id, object_reference=user.email, changes=changes)
        return Response(UserSerializer(user).data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, TenantIsolation])
def user_detail(request, pk):
    """Retrieve, update or deactivate a user"""
    user = get_object_or_404(User, pk=pk, tenant_id=request.user.tenant_id)
    is_manager = request.user.has_qms_permission('can_manage_users')

    if request.method == 'GET':
        return Response(UserSerializer(user).data)

    if request.method in ('PUT', 'PATCH'):
        if user.pk != request.user.pk and not is_manager:
            logger.warning(f"User {request.user.email} attempted to update user {pk}")
            return Response({'error': 'You can only update your own profile'}, status=status.HTTP_403_FORBIDDEN)
        return update_user(request, user, partial=request.method == 'PATCH')

    # DELETE deactivates the account
    if not is_manager:
        return Response({'error': 'You do not have permission: can_manage_users'}, status=status.HTTP_403_FORBIDDEN)
    if user.pk == request.user.pk:
        return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)
    user.is_active = False
    user.save(update_fields=['is_active', 'updated_at'])
    create_audit_log(request, 'user_deactivate', 'User', user.id, object_reference=user.email)
    logger.info(f"User {user.email} deactivated by {request.user.email}")
    return Response({'message': 'User deactivated successfully'})


def change_password(request, user):
    serializer = PasswordChangeSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    is_manager = request.user.has_qms_permission('can_manage_users')
    if not is_manager or user.pk == request.user.pk:
        current = serializer.validated_data.get('current_password')
        if not current or not user.check_password(current):
            return Response({'error': 'Current password is incorrect'}, status=status.HTTP_400_BAD_REQUEST)

    user.set_password(serializer.validated_data['new_password'])
    user.save(update_fields=['password', 'updated_at'])
    create_audit_log(request, 'password_change', 'User', user.id, object_reference=user.email)
    return Response({'message': 'Password updated successfully'})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, TenantIsolation])
def user_change_password(request, pk):
    """Change a user's password (self, or a user manager for others)"""
    user = get_object_or_404(User, pk=pk, tenant_id=request.user.tenant_id)
    if user.pk != request.user.pk and not request.user.has_qms_permission('can_manage_users'):
        return Response({'error': 'You can only change your own password'}, status=status.HTTP_403_FORBIDDEN)
    return change_password(request, user)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, TenantIsolation])
def user_profile(request):
    """Own profile"""
    if request.method == 'GET':
        return Response(UserSerializer(request.user).data)
    serializer = UserSelfUpdateSerializer(request.user, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        return Response(UserSerializer(request.user).data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, TenantIsolation])
def profile_change_password(request):
    return change_password(request, request.user)


@api_view(['GET'])
@permission_classes([IsAuthenticated, TenantIsolation])
def users_by_role(request):
    """Active tenant users in the given comma-separated roles"""
    roles = [r.strip() for r in request.query_params.get('roles', '').split(',') if r.strip()]
    unknown = [r for r in roles if r not in ROLE_PERMISSIONS]
    if not roles or unknown:
        return Response({'error': 'Please specify valid roles'}, status=status.HTTP_400_BAD_REQUEST)
    users = User.objects.filter(tenant_id=request.user.tenant_id, role__in=roles, is_active=True)
    return Response(UserSummarySerializer(users, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, TenantIsolation, require_permission('can_view_reports')])
def audit_log_list(request):
    """Tenant audit trail"""
    logs = AuditLog.objects.filter(tenant_id=request.user.tenant_id).select_related('user')
    for param in ('model_name', 'action', 'object_id'):
        value = request.query_params.get(param)
        if value:
            logs = logs.filter(**{param: value})
    return paginated_response(request, logs, AuditLogSerializer)


@api_view(['GET'])
@permission_classes([AllowAny])
def health(request):
    return Response({'status': 'ok', 'timestamp': timezone.now().isoformat()})
