# vidshare/schemas.py
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Request bodies keep every field optional: emptiness is checked by the
# services so a missing field is a 400 and never reaches a store.

class RegisterRequest(CamelModel):
    username: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None


class CredentialsRequest(CamelModel):
    username: Optional[str] = None
    password: Optional[str] = None


class UploadRequest(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    hashtags: Union[List[str], str, None] = None
    video_base64: Optional[str] = None
    video_blob_name: Optional[str] = None
    thumbnail_blob_name: Optional[str] = None
    creator_id: Optional[str] = None


class CommentRequest(CamelModel):
    video_id: Optional[str] = None
    user_id: Optional[str] = None
    comment: Optional[str] = None


class MessageOut(CamelModel):
    message: str


class RegisterOut(MessageOut):
    user_id: str


class RegisterCreatorOut(MessageOut):
    creator_id: str


class TokenOut(MessageOut):
    token: str


class TokenClaims(CamelModel):
    user_id: str
    username: str
    role: str


class ProtectedOut(MessageOut):
    user: TokenClaims


class UploadOut(MessageOut):
    video_id: str
    url: str


class VideoOut(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    hashtags: List[str] = []
    url: str
    thumbnail_url: Optional[str] = None
    uploader_id: Optional[str] = None
    uploaded_at: datetime


class CommentCreatedOut(MessageOut):
    comment_id: str


class CommentOut(CamelModel):
    id: str
    video_id: str
    user_id: str
    body: str
    timestamp: datetime
