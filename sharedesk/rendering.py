from datetime import datetime, timezone
from pathlib import Path
from starlette.templating import Jinja2Templates

TEMPLATES_DIR = Path(__file__).resolve().parent / 'templates'

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def human_filesize(num: int) -> str:
    if num is None:
        return '0 B'
    if num < 1024:
        return f"{num} B"
    for unit in ["KB", "MB", "GB", "TB"]:
        num /= 1024.0
        if abs(num) < 1024.0:
            return f"{num:.2f} {unit}"
    return f"{num:.2f} PB"


def human_datetime(value: datetime) -> str:
    if value is None:
        return ''
    # sqlite hands back naive values; everything is stored in UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


templates.env.filters['human_filesize'] = human_filesize
templates.env.filters['human_datetime'] = human_datetime


def render_home(request, user=None, texts=(), files=()):
    return templates.TemplateResponse(
        request,
        'home.html',
        {'user': user, 'texts': texts, 'files': files},
    )


def render_admin(request, user, users=()):
    return templates.TemplateResponse(
        request,
        'admin.html',
        {'user': user, 'users': users},
    )
