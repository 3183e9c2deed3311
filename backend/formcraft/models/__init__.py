from formcraft.models.form import Form
from formcraft.models.form_session import FormSession
from formcraft.models.response import Response
from formcraft.models.response_item import ResponseItem

__all__ = [
    "Form",
    "FormSession",
    "Response",
    "ResponseItem",
]
