from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import date, datetime

# Schema for creating a user in our database AFTER Firebase authentication
# It will use firebase_uid obtained from the Firebase ID token.
class UserCreateInternal(BaseModel):
    firebase_uid: str
    email: EmailStr
    name: str = ""
    role: str = 'student'

# Schema for displaying user information (sending data back to client)
class UserDisplay(BaseModel):
    id: int
    email: EmailStr
    name: str
    role: str
    total_xp: int
    level: int
    current_streak: int
    max_streak: int
    last_active_date: Optional[date] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True # Pydantic V2 way

# Schema representing the data decoded from a Firebase ID token
class TokenData(BaseModel):
    firebase_uid: str # 'uid' claim in the Firebase token payload
    email: EmailStr
    name: Optional[str] = None # Display name claim, when the sign-in provider supplies one


# Schema for the request body the client sends to our /register endpoint
# It contains the Firebase ID token.
class UserRegisterRequest(BaseModel):
    firebase_id_token: str
    name: Optional[str] = Field(None, max_length=255, description="Display name; falls back to the token's name claim")


# Schema for what the /register endpoint returns
class AuthResponse(BaseModel):
    message: str
    user: Optional[UserDisplay] = None
