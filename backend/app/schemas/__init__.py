# app/schemas/__init__.py
# Pydantic Schema 包
#
# 统一导出：from app.schemas import UserCreate, UserResponse

from app.schemas.user import (
    UserCreate,
    UserLogin,
    UserResponse,
    UserRoleUpdate,
    Token,
    TokenRefresh,
    MessageResponse,
    OfficialCreate,
    UserPage,
    SeatHolders,
)
from app.schemas.approval import (
    DecisionRequest,
    DecisionRecordResponse,
    ApprovalStateResponse,
    AggregateStatusResponse,
    ReviewItem,
    CategorizedResponse,
    MemberApprovalsResponse,
)
from app.schemas.profile import ProfileCreate, ProfileResponse
from app.schemas.collection import CollectionCreate, CollectionResponse, CollectionListResponse
from app.schemas.letter import LetterCreate, LetterResponse, LetterListResponse

__all__ = [
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "UserRoleUpdate",
    "Token",
    "TokenRefresh",
    "MessageResponse",
    "OfficialCreate",
    "UserPage",
    "SeatHolders",
    "DecisionRequest",
    "DecisionRecordResponse",
    "ApprovalStateResponse",
    "AggregateStatusResponse",
    "ReviewItem",
    "CategorizedResponse",
    "MemberApprovalsResponse",
    "ProfileCreate",
    "ProfileResponse",
    "CollectionCreate",
    "CollectionResponse",
    "CollectionListResponse",
    "LetterCreate",
    "LetterResponse",
    "LetterListResponse",
]
