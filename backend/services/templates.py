# backend/services/templates.py
import enum
import logging
from pydantic import BaseModel
from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

logger = logging.getLogger(__name__)


class TemplateKey(str, enum.Enum):
    NEW_ORDER_CUSTOMER = "new-order-customer"
    NEW_ORDER_ADMIN = "new-order-admin"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class TemplateRenderer:
    """Renders notification bodies from ``<templates_dir>/<key>.html``."""

    def __init__(self, templates_dir: str):
        self.env = Environment(
            loader=FileSystemLoader(templates_dir),
            autoescape=select_autoescape(["html"]),
            undefined=StrictUndefined,
        )

    def render(self, key: TemplateKey, view: BaseModel) -> str:
        key = TemplateKey(key)
        template = self.env.get_template(f"{key.value}.html")
        # Top-level fields become template variables; nested models keep attribute access
        return template.render(**dict(view))
