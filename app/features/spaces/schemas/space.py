from pydantic import BaseModel


class Space(BaseModel):
    """A Kontent.ai space and the site URL it is previewed on."""
    id: str
    name: str
    url: str

    class Config:
        json_schema_extra = {
            "example": {
                "id": "0b9e2f3c-6d1a-4c55-9f0b-2d7f4e6a8c11",
                "name": "Marketing site",
                "url": "https://www.example.com",
            }
        }
