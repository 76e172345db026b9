from datetime import datetime, timezone
from html import escape
from typing import List
from urllib.parse import urlencode

from fastapi import APIRouter, Query
from fastapi.responses import HTMLResponse

from app.layout import render_page
from app.routes import proxy as proxy_routes
from core.config import DEFAULT_STORE_IDS
from core.display import (
    avatar_url,
    fmt_date,
    fmt_timestamp,
    slot_badge,
    slot_highlight,
    totals,
    visible_slots,
)
from core.models import PickupSlot, flatten_pickups
from core.upstream import forward_headers

router = APIRouter()


def _occupants_html(slot: PickupSlot) -> str:
    if not slot.occupied_slots:
        return ""
    items = ""
    for occupant in slot.occupied_slots:
        src = avatar_url(occupant.avatar)
        name = escape(occupant.name or "Unbekannt")
        avatar = f'<img class="avatar" src="{escape(src)}" alt="{name}" />' if src else '<span class="avatar"></span>'
        state = "bestätigt" if occupant.is_confirmed else "ausstehend"
        items += f"""
          <li>{avatar}<div><div>{name}</div><div class="muted">{state}</div></div></li>
        """
    return f'<h4>Teilnehmer</h4><ul class="occupants">{items}</ul>'


def _slot_card(slot: PickupSlot) -> str:
    badge_class = "badge has-free" if slot.has_free else "badge"
    return f"""
    <article class="card {slot_highlight(slot)}">
      <div class="card-head">
        <div>
          <h3>{escape(fmt_date(slot.date))}</h3>
          <div class="muted">{escape(slot.description or "Abholung")} · Laden {escape(slot.store_id)}</div>
        </div>
        <div class="{badge_class}">{escape(slot_badge(slot))}</div>
      </div>
      <div class="muted">Gesamte Slots: {slot.total_slots} · Belegt: {slot.occupied}</div>
      {_occupants_html(slot)}
    </article>
    """


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard(
    store_id: List[str] = Query(default=[]),
    only_unoccupied: bool = True,
):
    """Server-rendered availability for the given stores."""
    ids = [sid.strip() for raw in store_id for sid in raw.split(",") if sid.strip()]
    if not ids:
        ids = [sid for sid in DEFAULT_STORE_IDS.split(",") if sid]

    result = await proxy_routes.build_aggregator().fetch_multi(ids, forward_headers())
    slots = flatten_pickups(result)
    counts = totals(slots)
    failed = [r for r in result.results if r.status != 200]

    errors_html = "".join(
        f'<div class="error">Laden {escape(r.store_id)}: HTTP {r.status}'
        f'{": " + escape(r.error) if r.error else ""}</div>'
        for r in failed
    )
    cards = "".join(_slot_card(s) for s in visible_slots(slots, only_unoccupied=only_unoccupied))
    if not cards:
        cards = '<div class="muted">No pickups found.</div>'

    toggle_query = urlencode(
        [("store_id", sid) for sid in ids] + [("only_unoccupied", "false" if only_unoccupied else "true")]
    )
    toggle_label = "Alle Slots anzeigen" if only_unoccupied else "Nur freie Slots anzeigen"
    toggle_href = escape(f"/dashboard?{toggle_query}")

    body = f"""
    <div class="stats">
      <div class="stat"><div class="label">Pickups</div><div class="value">{counts.total}</div></div>
      <div class="stat"><div class="label">With free slots</div><div class="value">{counts.with_free}</div></div>
      <div class="stat"><div class="label">Stores</div><div class="value">{len(ids)}</div></div>
    </div>
    <p><a href="{toggle_href}">{toggle_label}</a></p>
    {errors_html}
    {cards}
    """
    subtitle = f"Laden-IDs: {', '.join(ids)} · Last updated: {fmt_timestamp(datetime.now(timezone.utc))}"
    return render_page("Foodsharing Pickup Watcher", body, subtitle=subtitle)
