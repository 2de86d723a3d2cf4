from pydantic import BaseModel, EmailStr, Field, field_validator
import phonenumbers
import re


def _validate_password_strength(value: str) -> str:
    """
    Password must be at least 8 characters and contain:
    - At least one letter
    - At least one digit
    """
    if len(value) < 8:
        raise ValueError('Password must be at least 8 characters')

    if not re.search(r'[A-Za-z]', value):
        raise ValueError('Password must contain at least one letter')

    if not re.search(r'\d', value):
        raise ValueError('Password must contain at least one digit')

    return value


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str


class SignUpRequest(BaseModel):
    email: EmailStr
    first_name: str
    last_name: str
    city: str
    password: str
    phone_number: str

    @field_validator('password')
    @classmethod
    def validate_password(cls, value):
        return _validate_password_strength(value)

    @field_validator('phone_number')
    @classmethod
    def validate_phone(cls, value):
        """
        Validates phone number format using Google's phonenumbers library.
        Accepts international format: +201234567890
        """
        try:
            parsed = phonenumbers.parse(value, None)
            if not phonenumbers.is_valid_number(parsed):
                raise ValueError('Invalid phone number')

            return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)

        except phonenumbers.NumberParseException:
            raise ValueError('Phone number must include country code (e.g.: +966xxxxxxxxx, +20xxxxxxxxxx)')


class SignUpResponse(BaseModel):
    member_id: int


class ConfirmEmailRequest(BaseModel):
    code: str = Field(min_length=1, max_length=20)


class LoginRequest(BaseModel):
    member_id: int = Field(ge=1_000_000, le=9_999_999)
    password: str = Field(min_length=1)


class RefreshTokenRequest(BaseModel):
    refresh_token: str

    @field_validator('refresh_token')
    @classmethod
    def validate_token(cls, value):
        if not value or not value.strip():
            raise ValueError('Refresh token cannot be empty')
        return value


class RestorePasswordInitiateRequest(BaseModel):
    email: EmailStr
    member_id: int


class RestorePasswordConfirmCodeRequest(BaseModel):
    code: str = Field(min_length=1, max_length=20)


class RestorePasswordConfirmCodeResponse(BaseModel):
    code: str


class RestorePasswordCompleteRequest(BaseModel):
    code: str = Field(min_length=1, max_length=20)
    password: str

    @field_validator('password')
    @classmethod
    def validate_password(cls, value):
        return _validate_password_strength(value)
