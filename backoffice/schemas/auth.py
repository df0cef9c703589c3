from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
import uuid

class LoginRequest(BaseModel):
    email: str
    password: str

class UpdatePasswordRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    current_password: str
    new_password: str = Field(..., min_length=8)

# Admin as returned to clients (never includes the password hash)
class AdminOut(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    role: str
    active: bool = True

    model_config = {
        "from_attributes": True
    }

