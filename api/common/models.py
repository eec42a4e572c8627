"""
Pydantic schemas for the payloads written to the document store.

Fields are snake_case in Python and camelCase in stored documents.
``to_document`` is the single serializer: absent fields are omitted
rather than stored as nulls.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

AgeRange = Literal["10s", "20s", "30s", "40s", "50plus"]
VideoPlatform = Literal["youtube", "vimeo"]
FilmmakerType = Literal["individual", "team"]
MovieGenre = Literal["drama", "comedy", "horror", "romance", "etc"]
MovieStatus = Literal["production", "planned", "completed"]
PostType = Literal["casting_call", "actor_seeking", "staff_recruitment", "general"]
PostCategory = Literal[
    "free",
    "review",
    "tech",
    "equipment",
    "qna",
    "casting_review",
    "casting",
    "seeking",
    "collaboration",
    "general",
]
AuthorRole = Literal["filmmaker", "actor", "viewer", "venue"]
UserRole = Literal["actor", "filmmaker", "viewer"]
RequestType = Literal["movie_application", "actor_casting"]
RequestStatus = Literal["pending", "accepted", "rejected"]

REQUEST_STATUSES = ("pending", "accepted", "rejected")


class DocumentModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
    )


def to_document(model: BaseModel, partial: bool = False):
    """
    Serialize a payload for storage.

    Args:
        model (BaseModel): Validated payload.
        partial (bool): Keep only the fields the caller actually sent (updates).

    Returns:
        dict: camelCase document without absent fields.
    """
    return model.model_dump(by_alias=True, exclude_none=True, exclude_unset=partial)


class UserProfileInput(DocumentModel):
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = Field(None, alias="photoURL")
    role: Optional[UserRole] = None


class GalleryImage(DocumentModel):
    url: str
    path: str


class ActorTraits(DocumentModel):
    acting: int = Field(0, ge=0, le=100)
    appearance: int = Field(0, ge=0, le=100)
    charisma: int = Field(0, ge=0, le=100)
    emotion: int = Field(0, ge=0, le=100)
    humor: int = Field(0, ge=0, le=100)
    action: int = Field(0, ge=0, le=100)


class ActorProfileInput(DocumentModel):
    stage_name: str = Field(..., min_length=1)
    age_range: AgeRange
    height_cm: Optional[int] = Field(None, gt=0)
    body_type: Optional[str] = None
    location: Optional[str] = None
    experience: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    main_photo_url: Optional[str] = None
    main_photo_path: Optional[str] = None
    gallery: list[GalleryImage] = Field(default_factory=list)
    demo_platform: Optional[VideoPlatform] = None
    demo_url: Optional[str] = None
    bio: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    is_public: bool = True
    mbti: Optional[str] = Field(None, min_length=4, max_length=4)
    traits: Optional[ActorTraits] = None


class TeamMember(DocumentModel):
    name: str
    role: str
    profile_link: Optional[str] = None


class FilmmakerProfileInput(DocumentModel):
    type: FilmmakerType = "individual"
    name: str = Field(..., min_length=1)
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    specialties: list[str] = Field(default_factory=list)
    equipment: list[str] = Field(default_factory=list)
    experience: list[str] = Field(default_factory=list)
    main_photo_url: Optional[str] = None
    main_photo_path: Optional[str] = None
    gallery: list[GalleryImage] = Field(default_factory=list)
    is_public: bool = True
    team_members: Optional[list[TeamMember]] = None


class VenueInput(DocumentModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    location: str = Field(..., min_length=1)
    area: Optional[float] = Field(None, gt=0)
    price_per_hour: Optional[float] = Field(None, ge=0)
    price_per_day: Optional[float] = Field(None, ge=0)
    available_hours: Optional[str] = None
    photos: list[GalleryImage] = Field(default_factory=list)
    has_electricity: Optional[bool] = None
    has_parking: Optional[bool] = None
    noise_restriction: Optional[str] = None
    amenities: list[str] = Field(default_factory=list)
    is_public: bool = True


class VenueUpdate(DocumentModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    location: Optional[str] = Field(None, min_length=1)
    area: Optional[float] = Field(None, gt=0)
    price_per_hour: Optional[float] = Field(None, ge=0)
    price_per_day: Optional[float] = Field(None, ge=0)
    available_hours: Optional[str] = None
    photos: Optional[list[GalleryImage]] = None
    has_electricity: Optional[bool] = None
    has_parking: Optional[bool] = None
    noise_restriction: Optional[str] = None
    amenities: Optional[list[str]] = None
    is_public: Optional[bool] = None


class CreditInput(DocumentModel):
    role: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    profile_link: Optional[str] = None
    actor_id: Optional[str] = None


class MovieInput(DocumentModel):
    title: str = Field(..., min_length=1)
    genre: MovieGenre
    status: MovieStatus = "production"
    runtime_minutes: Optional[int] = Field(None, gt=0)
    logline: Optional[str] = None
    description: Optional[str] = None
    video_platform: Optional[VideoPlatform] = None
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    thumbnail_path: Optional[str] = None
    credits: list[CreditInput] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    year: Optional[int] = Field(None, ge=1888)


class MovieUpdate(DocumentModel):
    title: Optional[str] = Field(None, min_length=1)
    genre: Optional[MovieGenre] = None
    status: Optional[MovieStatus] = None
    runtime_minutes: Optional[int] = Field(None, gt=0)
    logline: Optional[str] = None
    description: Optional[str] = None
    video_platform: Optional[VideoPlatform] = None
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    thumbnail_path: Optional[str] = None
    credits: Optional[list[CreditInput]] = None
    tags: Optional[list[str]] = None
    year: Optional[int] = Field(None, ge=1888)
    is_published: Optional[bool] = None


class MovieRatingInput(DocumentModel):
    movie_title: Optional[str] = None
    movie_thumbnail: Optional[str] = None
    movie_year: Optional[int] = None
    movie_id: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    review: Optional[str] = None
    is_favorite: bool = False

    @model_validator(mode="after")
    def require_movie_reference(self):
        if not self.movie_title and not self.movie_id:
            raise ValueError("movieTitle or movieId is required")
        return self


class PostInput(DocumentModel):
    type: PostType
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    category: Optional[PostCategory] = None
    location: Optional[str] = None
    requirements: Optional[list[str]] = None
    movie_id: Optional[str] = None
    actor_id: Optional[str] = None
    is_public: bool = True


class PostUpdate(DocumentModel):
    title: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = Field(None, min_length=1)
    category: Optional[PostCategory] = None
    location: Optional[str] = None
    requirements: Optional[list[str]] = None
    is_public: Optional[bool] = None


class CommentInput(DocumentModel):
    content: str = Field(..., min_length=1, max_length=2000)


class RequestInput(DocumentModel):
    type: RequestType
    to_user_id: str = Field(..., min_length=1)
    movie_id: Optional[str] = None
    actor_id: Optional[str] = None
    message: str = Field(..., min_length=1, max_length=2000)


class ChatMessageInput(DocumentModel):
    message: str = Field(..., min_length=1, max_length=2000)
