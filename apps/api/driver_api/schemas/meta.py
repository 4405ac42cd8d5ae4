from pydantic import BaseModel


class OrderStatusOption(BaseModel):
    value: int
    label: str
