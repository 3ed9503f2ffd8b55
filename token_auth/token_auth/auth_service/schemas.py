from pydantic import BaseModel, ConfigDict, Field


class UserCreate(BaseModel):
    username: str
    password: str


class UserLogin(BaseModel):
    # Missing fields fail as bad credentials rather than 422
    username: str = ""
    password: str = ""


class Token(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str = Field(alias="Token")


class RegistrationResponse(BaseModel):
    message: str = "User created successfully"


class ValidationErrorResponse(BaseModel):
    code: str
    description: str
