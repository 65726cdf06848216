"""
Chat Memory Service - Launcher
Serves the FastAPI app with uvicorn. Run with: python main.py
"""
import uvicorn
from config.settings import settings


def run() -> None:
    base_url = f"http://{settings.api_host}:{settings.api_port}"
    print(f"{settings.app_name} v{settings.app_version} "
          f"(llm={settings.llm_provider}, memory={settings.memory_backend}, "
          f"window={settings.memory_max_messages})")
    print(f"Chat endpoint: POST {base_url}/memory/process  |  docs: {base_url}/docs")

    uvicorn.run("api.main:app", host=settings.api_host, port=settings.api_port, reload=settings.debug)


if __name__ == "__main__":
    run()
