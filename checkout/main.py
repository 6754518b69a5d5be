# checkout/main.py
import uvicorn

from checkout.api import create_app
from checkout.data.database import Base, engine
from checkout.utils.logging import get_logger

# import wszystkich modeli przed create_all
import checkout.data.models  # noqa: F401

logger = get_logger(__name__)

app = create_app()


@app.on_event("startup")
def init_db():
    logger.info(f"Creating tables: {list(Base.metadata.tables.keys())}")
    Base.metadata.create_all(bind=engine)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
