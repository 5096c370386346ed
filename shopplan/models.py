from flask import current_app, has_app_context
from flask_sqlalchemy import SQLAlchemy

from shopplan.datetime_utils import format_datetime_local, utcnow
from shopplan.planning.catalog import StageDefinition
from shopplan.planning.config import PlanningConfig

db = SQLAlchemy()


def _display_timezone():
    if has_app_context():
        return current_app.config.get("DISPLAY_TIMEZONE")
    return None


class ManufacturingStage(db.Model):
    """Catalog entry for a manufacturing stage, shared by all order items."""
    __tablename__ = "manufacturing_stages"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), unique=True, nullable=False, index=True)
    description = db.Column(db.String(512))
    order = db.Column(db.Integer, nullable=False, default=0)  # Sequence position, ascending
    active = db.Column(db.Boolean, nullable=False, default=True)
    default_days = db.Column(db.Float, default=PlanningConfig.DEFAULT_STAGE_DAYS)
    category = db.Column(db.String(64))

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<ManufacturingStage {self.order} - {self.name}>"

    def to_definition(self):
        return StageDefinition(
            name=self.name,
            order=self.order or 0,
            default_days=self.default_days or PlanningConfig.DEFAULT_STAGE_DAYS,
            active=bool(self.active),
            description=self.description or '',
            category=self.category,
        )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'order': self.order,
            'active': self.active,
            'default_days': self.default_days,
            'category': self.category,
        }


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(64), unique=True, nullable=False)
    customer_name = db.Column(db.String(256))
    delivery_date = db.Column(db.Date)
    created_at = db.Column(db.DateTime, default=utcnow)

    items = db.relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.item_number",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Order {self.order_number}>"

    def to_dict(self):
        return {
            'id': self.id,
            'order_number': self.order_number,
            'customer_name': self.customer_name,
            'delivery_date': self.delivery_date.isoformat() if self.delivery_date else None,
            'item_count': len(self.items),
        }


class OrderItem(db.Model):
    """
    An item of a production order.

    progress and stage_planning keep the document shape the frontend writes:
    progress maps stage name → percent, stage_planning maps stage name →
    {days, startDate, endDate, responsible}. Both hold enabled stages only.
    """
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    item_number = db.Column(db.Integer, nullable=False, default=1)
    code = db.Column(db.String(64), nullable=False)
    description = db.Column(db.String(512))
    quantity = db.Column(db.Float, default=1)
    unit_weight = db.Column(db.Float, default=0)

    progress = db.Column(db.JSON, nullable=False, default=dict)
    stage_planning = db.Column(db.JSON, nullable=False, default=dict)
    overall_progress = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    order = db.relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.id} - {self.code}>"

    def to_dict(self):
        return {
            'id': self.id,
            'order_id': self.order_id,
            'item_number': self.item_number,
            'code': self.code,
            'description': self.description,
            'quantity': self.quantity,
            'unit_weight': self.unit_weight,
            'progress': self.progress or {},
            'stage_planning': self.stage_planning or {},
            'overall_progress': self.overall_progress,
            'updated_at': format_datetime_local(self.updated_at, _display_timezone()),
        }


class ItemProgressLog(db.Model):
    """Tracks planning and progress changes for order items over time."""
    __tablename__ = "item_progress_logs"

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("order_items.id"), nullable=False, index=True)
    operation = db.Column(db.String(50), nullable=False)  # "toggle_stage", "change_duration", ...
    stage_name = db.Column(db.String(128))

    progress_before = db.Column(db.Integer)
    progress_after = db.Column(db.Integer)
    payload = db.Column(db.JSON)  # Request data that triggered the change

    changed_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    def __repr__(self):
        return f"<ItemProgressLog {self.item_id} - {self.operation}>"

    def to_dict(self):
        return {
            'id': self.id,
            'item_id': self.item_id,
            'operation': self.operation,
            'stage_name': self.stage_name,
            'progress_before': self.progress_before,
            'progress_after': self.progress_after,
            'payload': self.payload,
            'changed_at': format_datetime_local(self.changed_at, _display_timezone()),
        }
