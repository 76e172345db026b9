"""
Shared HTML layout and styling helpers.
"""
from html import escape

from fastapi.responses import HTMLResponse


def render_page(title: str, body: str, subtitle: str = "") -> HTMLResponse:
    """
    Shared layout: dark background, header with an optional status line.
    """
    html = f"""
    <!DOCTYPE html>
    <html>
      <head>
        <meta charset="utf-8" />
        <meta name="viewport" content="width=device-width, initial-scale=1" />
        <title>{escape(title)}</title>
        <style>
          :root {{
            color-scheme: dark;
          }}
          * {{
            box-sizing: border-box;
          }}
          body {{
            font-family: system-ui, -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif;
            margin: 0;
            padding: 0;
            background: #020617;
            color: #e5e7eb;
          }}
          .page {{
            max-width: 960px;
            margin: 0 auto;
            padding: 1.5rem 1rem 3rem;
          }}
          header {{
            display: flex;
            justify-content: space-between;
            align-items: center;
            margin-bottom: 1.5rem;
            padding: 0.75rem 1rem;
            background: linear-gradient(90deg, rgba(56,189,248,0.08), rgba(34,197,94,0.08));
            border: 1px solid #1f2937;
            border-radius: 0.75rem;
          }}
          header h1 {{
            font-size: 1.4rem;
            margin: 0;
          }}
          .subtitle {{
            font-size: 0.8rem;
            color: #9ca3af;
            margin-top: 0.25rem;
          }}
          a {{
            color: #38bdf8;
          }}
          .card {{
            background: #020617;
            border-radius: 0.75rem;
            border: 1px solid #1f2937;
            padding: 1rem 1.25rem;
            margin-bottom: 1rem;
            box-shadow: 0 10px 30px rgba(15, 23, 42, 0.5);
          }}
          .card.monday {{
            border: 3px solid #ea580c;
            background: #1c1917;
          }}
          .card.empty {{
            border: 3px solid #dc2626;
          }}
          .card.free {{
            border: 3px solid #22c55e;
          }}
          .card-head {{
            display: flex;
            justify-content: space-between;
            align-items: flex-start;
            gap: 0.75rem;
          }}
          .card-head h3 {{
            margin: 0;
            font-size: 1.1rem;
          }}
          .badge {{
            padding: 0.2rem 0.75rem;
            border-radius: 999px;
            font-size: 0.85rem;
            background: #1f2937;
            white-space: nowrap;
          }}
          .badge.has-free {{
            background: #14532d;
            color: #bbf7d0;
          }}
          ul.occupants {{
            list-style: none;
            padding: 0;
            margin: 0.5rem 0 0;
          }}
          ul.occupants li {{
            display: flex;
            align-items: center;
            gap: 0.75rem;
            margin-bottom: 0.4rem;
          }}
          .avatar {{
            width: 32px;
            height: 32px;
            border-radius: 50%;
            object-fit: cover;
            background: #334155;
            display: inline-block;
          }}
          .muted {{
            color: #9ca3af;
            font-size: 0.85rem;
          }}
          .error {{
            border: 1px solid #7f1d1d;
            background: #450a0a;
            color: #fecaca;
            border-radius: 0.75rem;
            padding: 0.5rem 0.75rem;
            margin-bottom: 1rem;
          }}
          .stats {{
            display: flex;
            gap: 0.75rem;
            margin-bottom: 1rem;
            flex-wrap: wrap;
          }}
          .stat {{
            flex: 0 0 140px;
            padding: 0.6rem 0.8rem;
            border-radius: 0.75rem;
            border: 1px solid #1f2937;
            background: #020617;
          }}
          .stat .label {{
            font-size: 0.75rem;
            color: #9ca3af;
          }}
          .stat .value {{
            font-size: 1.2rem;
            font-weight: 600;
          }}
          footer {{
            margin-top: 2.5rem;
            padding: 1.5rem 0;
            border-top: 1px solid #1f2937;
            font-size: 0.85rem;
            color: #9ca3af;
            text-align: center;
          }}
        </style>
      </head>
      <body>
        <div class="page">
          <header>
            <div>
              <h1>{escape(title)}</h1>
              <div class="subtitle">{escape(subtitle)}</div>
            </div>
          </header>
          <main>
            {body}
          </main>
          <footer>
            Runs hourly (on the hour) and on demand. Times shown in Europe/Berlin.
          </footer>
        </div>
      </body>
    </html>
    """
    return HTMLResponse(content=html)
