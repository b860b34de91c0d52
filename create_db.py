from erp.db import Base, engine
# models must be imported before create_all:
import erp.models  # noqa

Base.metadata.create_all(bind=engine)
print("DB created at:", engine.url)
