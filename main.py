import uvicorn

from shared.config.settings import Settings
from services.order_service.main import create_order_app

settings = Settings.from_env()
app = create_order_app(settings)

if __name__ == "__main__":
    uvicorn.run(app, host=settings.listen_host, port=settings.listen_port)
