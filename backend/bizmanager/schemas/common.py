"""
Tipi comuni per gli schemi Pydantic
Progetto: BizManager Pro

Il documento di stato usa chiavi camelCase (es. "agreedTotal", "jobPayments"):
gli attributi Python restano snake_case e gli alias vengono generati
automaticamente. I campi data terminano in "ISO" e hanno alias esplicito.
"""

from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

# Importi e quantità: Decimal in memoria, numero nel JSON
Amount = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]


class CamelModel(BaseModel):
    """Base per tutti gli schemi: alias camelCase, accetta anche i nomi Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )
