from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, StreamingResponse

from profile_scraper_pkg import scraper_logging
from profile_scraper_pkg.api_client import ProfileApiClient
from profile_scraper_pkg.browser import BrowserSession
from profile_scraper_pkg.config import MIN_BATCH_SIZE
from profile_scraper_pkg.messages import BatchService
from profile_scraper_pkg.navigation import TabController
from profile_scraper_pkg.orchestrator import BatchOrchestrator
from profile_scraper_pkg.urls import read_url_file


logger = logging.getLogger(__name__)


HTML_PAGE = """
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>LinkedIn Profile Scraper</title>
  <style>
    :root {
      --bg: #f8fafc;
      --surface: #ffffff;
      --text: #0f172a;
      --muted: #64748b;
      --primary: #2563eb;
      --secondary: #16a34a;
      --danger: #dc2626;
      --accent: #7c3aed;
      --border: #e2e8f0;
    }
    * { box-sizing: border-box; }
    body {
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
      background: var(--bg);
      color: var(--text);
      margin: 0;
    }
    .page { max-width: 700px; margin: 0 auto; padding: 32px 20px 60px; }
    .hero { text-align: center; margin-bottom: 24px; }
    .hero h1 { margin: 0 0 8px; font-size: 28px; color: var(--primary); }
    .hero p { margin: 0; color: var(--muted); }
    .card {
      background: var(--surface);
      border: 1px solid var(--border);
      border-radius: 16px;
      padding: 24px;
      margin-bottom: 20px;
      box-shadow: 0 4px 12px rgba(0,0,0,0.05);
    }
    .card h2 { margin: 0 0 16px; font-size: 18px; }
    .row { display: flex; gap: 8px; margin-bottom: 12px; }
    input[type="url"], input[type="file"] {
      flex: 1;
      padding: 12px;
      border: 1px solid var(--border);
      border-radius: 8px;
      font-size: 14px;
    }
    .hint { font-size: 12px; color: var(--muted); margin-top: 4px; }
    button {
      padding: 12px 20px;
      border: none;
      border-radius: 8px;
      font-weight: 600;
      font-size: 14px;
      cursor: pointer;
    }
    button:disabled { opacity: 0.5; cursor: not-allowed; }
    .btn-primary { background: var(--primary); color: white; }
    .btn-secondary { background: var(--secondary); color: white; }
    .btn-danger { background: var(--danger); color: white; }
    .btn-accent { background: var(--accent); color: white; }
    #queue { list-style: none; padding: 0; margin: 0 0 12px; max-height: 220px; overflow: auto; }
    #queue li {
      display: flex;
      justify-content: space-between;
      padding: 6px 8px;
      border-bottom: 1px solid var(--border);
      font-size: 13px;
    }
    #queue li button { padding: 2px 8px; font-size: 12px; background: #f1f5f9; }
    .progress { height: 8px; background: var(--border); border-radius: 4px; overflow: hidden; margin: 12px 0; }
    .progress div { height: 100%; width: 0; background: var(--primary); transition: width 0.3s; }
    #status { padding: 12px; border-radius: 8px; font-weight: 500; display: none; }
    #status.show { display: block; }
    #status.info { background: #dbeafe; color: #1e40af; }
    #status.error { background: #fee2e2; color: #991b1b; }
    #status.success { background: #dcfce7; color: #166534; }
    .stats { display: flex; gap: 16px; font-size: 13px; color: var(--muted); flex-wrap: wrap; }
    #api-state.online { color: var(--secondary); }
    #api-state.offline { color: var(--danger); }
  </style>
</head>
<body>
  <div class="page">
    <div class="hero">
      <h1>LinkedIn Profile Scraper</h1>
      <p>Queue profiles, scrape them one tab at a time, save them to the profile API.</p>
    </div>

    <div class="card">
      <h2>Profile queue (<span id="queue-count">0</span>)</h2>
      <div class="row">
        <input type="url" id="url-input" placeholder="https://www.linkedin.com/in/username/" />
        <button type="button" id="btn-add" class="btn-accent">Add</button>
      </div>
      <div class="row">
        <input type="file" id="file-input" accept=".csv,.xlsx,.xls" />
        <button type="button" id="btn-upload" class="btn-accent">Import</button>
      </div>
      <div class="hint">At least __MIN_BATCH__ profiles are required to start a batch.</div>
      <ul id="queue"></ul>
      <div class="row">
        <button type="button" id="btn-start" class="btn-primary" disabled>Start batch</button>
        <button type="button" id="btn-stop" class="btn-danger" disabled>Stop</button>
        <button type="button" id="btn-clear">Clear</button>
      </div>
      <div class="progress"><div id="progress-bar"></div></div>
      <div id="status"></div>
    </div>

    <div class="card">
      <h2>Backend &amp; statistics</h2>
      <div class="stats">
        <span>API: <b id="api-state">unknown</b></span>
        <span>Processed: <b id="stat-processed">0</b></span>
        <span>Created: <b id="stat-success">0</b></span>
        <span>Skipped: <b id="stat-duplicates">0</b></span>
        <span>Errors: <b id="stat-errors">0</b></span>
      </div>
      <div class="row" style="margin-top: 12px;">
        <button type="button" id="btn-test" class="btn-secondary">Test API</button>
        <button type="button" id="btn-reset">Reset statistics</button>
      </div>
    </div>
  </div>

  <script>
    const MIN_BATCH = __MIN_BATCH__;
    let queue = [];
    const $ = (id) => document.getElementById(id);

    function showStatus(msg, type = 'info') {
      $('status').textContent = msg;
      $('status').className = 'show ' + type;
    }

    async function send(action, data) {
      const res = await fetch('/api/message', {
        method: 'POST',
        headers: { 'Content-Type': 'application/json' },
        body: JSON.stringify({ action, data: data || {} })
      });
      return res.json();
    }

    function renderQueue() {
      $('queue').innerHTML = '';
      queue.forEach((url, i) => {
        const li = document.createElement('li');
        li.textContent = url.replace('https://www.', '');
        const rm = document.createElement('button');
        rm.textContent = 'x';
        rm.onclick = () => { queue.splice(i, 1); renderQueue(); };
        li.appendChild(rm);
        $('queue').appendChild(li);
      });
      $('queue-count').textContent = queue.length;
      $('btn-start').disabled = queue.length < MIN_BATCH;
    }

    function addUrl(url) {
      url = url.trim();
      if (!url) return;
      if (!/linkedin\\.com\\/in\\//.test(url)) {
        showStatus('Please enter a valid LinkedIn profile URL (linkedin.com/in/username)', 'error');
        return;
      }
      if (!url.startsWith('http')) url = 'https://' + url;
      if (!queue.includes(url)) queue.push(url);
      renderQueue();
    }

    async function refreshStats() {
      const res = await send('getStatistics');
      if (!res.success) return;
      $('stat-processed').textContent = res.data.totalProcessed;
      $('stat-success').textContent = res.data.totalSuccess;
      $('stat-duplicates').textContent = res.data.totalDuplicates;
      $('stat-errors').textContent = res.data.totalErrors;
    }

    async function testApi() {
      const res = await send('testApiConnection');
      const state = res.success ? 'online' : 'offline';
      $('api-state').textContent = state;
      $('api-state').className = state;
    }

    $('btn-add').onclick = () => { addUrl($('url-input').value); $('url-input').value = ''; };
    $('url-input').addEventListener('keydown', (e) => { if (e.key === 'Enter') $('btn-add').click(); });
    $('btn-clear').onclick = () => { queue = []; renderQueue(); };
    $('btn-test').onclick = testApi;
    $('btn-reset').onclick = async () => { await send('resetStatistics'); refreshStats(); };

    $('btn-upload').onclick = async () => {
      const file = $('file-input').files[0];
      if (!file) { showStatus('Choose a CSV or Excel file first.', 'error'); return; }
      const form = new FormData();
      form.append('file', file);
      const res = await fetch('/api/urls/upload', { method: 'POST', body: form });
      const data = await res.json();
      if (!res.ok) { showStatus(data.error || 'Import failed.', 'error'); return; }
      data.urls.forEach(addUrl);
      showStatus('Imported ' + data.urls.length + ' profile URL(s).', 'info');
    };

    $('btn-stop').onclick = async () => {
      await send('stopBatchProcessing');
      showStatus('Stopping after the current profile...', 'info');
    };

    $('btn-start').onclick = async () => {
      $('btn-start').disabled = true;
      $('btn-stop').disabled = false;
      $('progress-bar').style.width = '0';
      showStatus('Starting batch of ' + queue.length + ' profiles...', 'info');
      const res = await send('startBatchProcessing', { urls: queue });
      $('btn-stop').disabled = true;
      if (res.success) {
        showStatus(res.data.message, res.data.summary.errors ? 'info' : 'success');
        queue = [];
      } else {
        showStatus(res.error || 'Batch failed.', 'error');
      }
      renderQueue();
      refreshStats();
    };

    const events = new EventSource('/api/progress');
    events.onmessage = (e) => {
      const msg = JSON.parse(e.data);
      if (msg.action !== 'progressUpdate') return;
      const p = msg.data;
      $('progress-bar').style.width = p.progress + '%';
      showStatus('Processing ' + p.processed + '/' + p.total + ': ' + p.currentUrl, 'info');
    };

    renderQueue();
    refreshStats();
    testApi();
  </script>
</body>
</html>
""".replace("__MIN_BATCH__", str(MIN_BATCH_SIZE))


def build_service() -> tuple[BatchService, BrowserSession, ProfileApiClient]:
    session = BrowserSession()
    api = ProfileApiClient()
    orchestrator = BatchOrchestrator(TabController(session), api)
    return BatchService(orchestrator, api), session, api


def create_ui_app(
    service: Optional[BatchService] = None,
    session: Optional[BrowserSession] = None,
    api: Optional[ProfileApiClient] = None,
) -> FastAPI:
    if service is None:
        service, session, api = build_service()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scraper_logging.init_logging()
        service.install_crash_handler(asyncio.get_running_loop())
        yield
        await service.orchestrator.reset()
        if api is not None:
            await api.aclose()
        if session is not None:
            await session.close()

    app = FastAPI(title="LinkedIn Profile Scraper UI", lifespan=lifespan)
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", response_class=HTMLResponse)
    async def index() -> HTMLResponse:
        return HTMLResponse(HTML_PAGE)

    @app.post("/api/message")
    async def message(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except ValueError:
            return JSONResponse(status_code=400, content={"success": False, "error": "Invalid JSON body"})
        if not isinstance(body, dict):
            return JSONResponse(status_code=400, content={"success": False, "error": "Message must be an object"})
        return JSONResponse(await service.handle_message(body))

    @app.get("/api/progress")
    async def progress(request: Request) -> StreamingResponse:
        queue = service.subscribe()

        async def events():
            try:
                while not await request.is_disconnected():
                    try:
                        msg = await asyncio.wait_for(queue.get(), timeout=15)
                    except asyncio.TimeoutError:
                        yield ": keep-alive\n\n"
                        continue
                    yield f"data: {json.dumps(msg)}\n\n"
            finally:
                service.unsubscribe(queue)

        return StreamingResponse(events(), media_type="text/event-stream")

    @app.post("/api/urls/upload")
    async def upload_urls(file: UploadFile = File(...)) -> JSONResponse:
        try:
            content = await file.read()
            urls = read_url_file(file.filename or "", content)
        except Exception as e:
            logger.warning("⚠️ Could not parse uploaded file %s: %s", file.filename, e)
            return JSONResponse(status_code=400, content={"error": f"Failed to parse file: {str(e)}"})
        if not urls:
            return JSONResponse(status_code=400, content={"error": "No valid LinkedIn URLs found."})
        return JSONResponse({"urls": urls, "count": len(urls)})

    @app.post("/api/open-linkedin")
    async def open_linkedin() -> JSONResponse:
        """Open linkedin.com in the scraping browser so the user can log in."""
        if session is None:
            return JSONResponse(status_code=500, content={"error": "No browser session configured"})
        try:
            context = await asyncio.wait_for(session.get_context(), timeout=10)
            page = await context.new_page()
            await page.goto("https://www.linkedin.com", wait_until="domcontentloaded", timeout=15000)
            return JSONResponse({"ok": True})
        except asyncio.TimeoutError:
            return JSONResponse(status_code=500, content={"error": "Connection timeout. Make sure Chrome CDP is running."})
        except Exception as exc:
            logger.error("❌ Could not open LinkedIn: %s", exc)
            return JSONResponse(status_code=500, content={"error": str(exc)})

    return app


app = create_ui_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8787)
