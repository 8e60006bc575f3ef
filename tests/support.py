from sqlalchemy.orm import sessionmaker

from smartbilling.database import apply_migrations, build_engine
from smartbilling.models.item import Item
from smartbilling.models.user import User


def make_session_factory():
    engine = build_engine("sqlite://")
    apply_migrations(engine)
    return engine, sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def add_user(db, user_id=1, email=None):
    user = User(id=user_id, email=email or f"user{user_id}@shop.test", password_hash="", shop_name="Test Shop")
    db.add(user)
    db.commit()
    return user


def add_item(db, owner_id=1, code="ITM-1", **values):
    values.setdefault("item_name", code)
    item = Item(user_id=owner_id, item_code=code, **values)
    db.add(item)
    db.commit()
    return item
