from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework import serializers
from rest_framework.exceptions import AuthenticationFailed
from .models import CustomUser
from .validators import clean_national_id, validate_thai_national_id


class UserSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(source='get_full_name', read_only=True)

    class Meta:
        model = CustomUser
        fields = [
            'id',
            'email',
            'phone',
            'national_id',
            'first_name',
            'last_name',
            'full_name',
            'role',
            'is_active',
            'date_joined',
            'updated_at',
        ]
        read_only_fields = fields


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=6, style={'input_type': 'password'})
    first_name = serializers.CharField(max_length=50)
    last_name = serializers.CharField(max_length=50)
    # Declared explicitly so the unique model validators do not run;
    # RegisterView checks all three identifiers together and answers 409.
    email = serializers.EmailField()
    phone = serializers.RegexField(r'^\d{10}$', error_messages={'invalid': 'Phone number must be 10 digits.'})
    national_id = serializers.CharField(max_length=17)

    class Meta:
        model = CustomUser
        fields = ['email', 'phone', 'national_id', 'first_name', 'last_name', 'password']

    def validate_email(self, value):
        return CustomUser.objects.normalize_email(value).lower()

    def validate_national_id(self, value):
        try:
            validate_thai_national_id(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.messages)
        return clean_national_id(value)

    def create(self, validated_data):
        password = validated_data.pop('password')
        return CustomUser.objects.create_user(password=password, **validated_data)


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        attrs[self.username_field] = attrs[self.username_field].strip().lower()
        try:
            data = super().validate(attrs)
        except AuthenticationFailed:
            raise AuthenticationFailed(detail="Invalid email or password.")
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['email'] = user.email
        token['role'] = user.role
        return token
