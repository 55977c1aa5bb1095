from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from enum import Enum
from pathlib import Path
from typing import Annotated, List, Literal

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, Field, field_validator

from csvchart.charts import DEFAULT_SERIES
from csvchart.config import DOCS_DIR, TEMPLATES_DIR
from csvchart.page import CheckboxGroup, Page
from to_charts import CHART_CONFIG, render_chart, render_samples

logger = logging.getLogger("server")

BASE_DIR = Path(os.environ.get("CSVTOCHART_DOCS_DIR", DOCS_DIR)).resolve()
DATA_DIR = BASE_DIR / "data"
CHARTS_DIR = BASE_DIR / "charts"
HOST = os.environ.get("CSVTOCHART_HOST", "127.0.0.1")
PORT = int(os.environ.get("CSVTOCHART_PORT", "8000"))

BASE_DIR.mkdir(parents=True, exist_ok=True)

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

CHARTS_BY_TYPE = {str(config["type"]): config for config in CHART_CONFIG}


class ChartType(str, Enum):
    line = "line"
    multi_line = "multi-line"
    pie = "pie"
    pie_aggregated = "pie-aggregated"


class ChartQuery(BaseModel):
    format: Literal["svg", "png"] = Field(default="svg", description="output format")
    source: str | None = Field(default=None, description="CSV file name inside docs/data")
    width: int | None = Field(default=None, gt=0, le=4000, description="plot width in pixels")
    height: int | None = Field(default=None, gt=0, le=4000, description="plot height in pixels")
    visible: List[str] | None = Field(default=None, description="visible series of the multi-line chart")

    @field_validator("source")
    @classmethod
    def _plain_name(cls, value: str | None) -> str | None:
        if value is None:
            return value
        value = value.strip()
        if not value or Path(value).name != value or not value.endswith(".csv"):
            raise ValueError("source must be a .csv file name inside the data directory")
        return value


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not CHARTS_DIR.exists() or not any(CHARTS_DIR.rglob("*.png")):
        logger.info("sample charts missing, rendering into %s", CHARTS_DIR)
        written = await asyncio.to_thread(render_samples, DATA_DIR, CHARTS_DIR)
        logger.info("rendered %d sample chart files", len(written))
    else:
        logger.info("sample charts already present, skipping")
    yield


app = FastAPI(title="CSV Chart Service", version="1.0", lifespan=lifespan, docs_url=None, redoc_url=None)

app.mount("/docs", StaticFiles(directory=BASE_DIR, html=True), name="docs")


def _visibility(visible: List[str] | None) -> CheckboxGroup:
    checkboxes = CheckboxGroup.for_series(DEFAULT_SERIES, checked=visible is None)
    for field_name in visible or ():
        if field_name:
            checkboxes.set(field_name, True)
    return checkboxes


async def _render(chart_type: str, query: ChartQuery, page: Page):
    config = dict(CHARTS_BY_TYPE[chart_type])
    if query.width:
        config["width"] = query.width
    if query.height:
        config["height"] = query.height
    source = DATA_DIR / (query.source or str(config["source"]))
    if not source.is_file():
        raise HTTPException(status_code=404, detail=f"data file {source.name} not found")

    kwargs: dict = {"page": page}
    if chart_type == "multi-line":
        kwargs["checkboxes"] = _visibility(query.visible)
    elif chart_type == "pie":
        kwargs["legend_location"] = f"{chart_type}-legend"
    return await render_chart(config, source, page.mount(f"{chart_type}-chart"), query.format, **kwargs)


@app.get("/", response_class=HTMLResponse)
async def index(request: Request, visible: Annotated[List[str] | None, Query()] = None) -> HTMLResponse:
    page = Page()
    failures = []
    for chart_type in CHARTS_BY_TYPE:
        try:
            result = await _render(chart_type, ChartQuery(visible=visible), page)
        except HTTPException as exc:
            logger.warning("chart %s skipped: %s", chart_type, exc.detail)
            failures.append(chart_type)
            continue
        if not result.ok:
            failures.append(chart_type)
    checkboxes = _visibility(visible).checked()
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "page": page,
            "series": DEFAULT_SERIES,
            "checked": checkboxes,
            "failures": failures,
        },
    )


@app.get("/charts/{chart_type}")
async def chart(chart_type: ChartType, query: Annotated[ChartQuery, Query()]) -> Response:
    page = Page()
    result = await _render(chart_type.value, query, page)
    if not result.ok or result.fragment is None:
        raise HTTPException(status_code=502, detail=result.error or "chart could not be rendered")
    return Response(content=result.fragment.content, media_type=result.fragment.media_type)


@app.get("/api/charts")
async def list_charts() -> dict:
    return {
        "charts": [
            {"type": chart_type, "source": config["source"], "path": f"/charts/{chart_type}"}
            for chart_type, config in CHARTS_BY_TYPE.items()
        ],
        "data": sorted(path.name for path in DATA_DIR.glob("*.csv")),
    }


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host=HOST, port=PORT)
