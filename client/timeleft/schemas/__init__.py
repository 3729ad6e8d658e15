from timeleft.schemas.user import (
    User, UserRole, UserSummary, LoginCredentials, RegisterData, UpdateProfileData, AuthResponse,
)
from timeleft.schemas.refs import Reference, ExpandedUser, UserRef, ref_id
from timeleft.schemas.icebreaker import (
    Icebreaker, ExpandedIcebreaker, IcebreakerRef, IcebreakerCreate, IcebreakerUpdate,
)
from timeleft.schemas.event import (
    Event, EventStatus, EventCreate, EventUpdate, ImageUpload,
)
from timeleft.schemas.payment import (
    OrderDescriptor, CheckoutOptions, CheckoutPrefill, CheckoutResult, PaymentVerification,
)

__all__ = [
    "User", "UserRole", "UserSummary", "LoginCredentials", "RegisterData", "UpdateProfileData", "AuthResponse",
    "Reference", "ExpandedUser", "UserRef", "ref_id",
    "Icebreaker", "ExpandedIcebreaker", "IcebreakerRef", "IcebreakerCreate", "IcebreakerUpdate",
    "Event", "EventStatus", "EventCreate", "EventUpdate", "ImageUpload",
    "OrderDescriptor", "CheckoutOptions", "CheckoutPrefill", "CheckoutResult", "PaymentVerification",
]
