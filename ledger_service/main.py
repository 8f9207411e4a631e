import logging
import uvicorn
from ledger_common.settings import settings
from ledger_service.api import create_app
from ledger_service.db import make_engine, make_session_factory
from ledger_service.models import Base
from ledger_service.store import SQLStore

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

engine = make_engine()
Base.metadata.create_all(bind=engine)
store = SQLStore(make_session_factory(engine))
app = create_app(store)

logger.info(f"🚀 Ledger service ready on {engine.url.render_as_string(hide_password=True)}")

if __name__ == "__main__":
    uvicorn.run(app, host=settings.server_host, port=settings.server_port)
