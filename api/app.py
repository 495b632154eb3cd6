from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import health, status, schedule, control, events
from core.errors import DisplayError

app = FastAPI(
    title="Khidmat Display",
    version="0.1.0"
)

app.include_router(health.router)
app.include_router(status.router)
app.include_router(schedule.router)
app.include_router(control.router)
app.include_router(events.router)


@app.exception_handler(DisplayError)
def display_error(request: Request, exc: DisplayError):
    return JSONResponse(
        status_code=503,
        content={"success": False, "error": type(exc).__name__, "message": str(exc)},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",   # settings panel dev server
        "http://localhost:8000",   # same-origin
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
