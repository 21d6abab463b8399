from pydantic import BaseModel, ConfigDict, Field, AliasChoices, field_validator
from pydantic.alias_generators import to_camel


class UserDTO(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    is_admin: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        return str(value) if value is not None else value


class AuthResponseDTO(BaseModel):
    success: bool | None = None
    token: str
    user: UserDTO
