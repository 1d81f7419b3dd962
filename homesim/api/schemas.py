from __future__ import annotations
from pydantic import BaseModel, StrictBool, StrictInt, StrictStr
from typing import Union


class UpdateLightRequest(BaseModel):
    # Strict so that JSON true never turns into light 1
    lightId: Union[StrictInt, StrictStr]
    state: StrictBool
