import logging
from datetime import date
from typing import Any, Dict, Mapping, Optional

from flask import Flask, flash, jsonify, redirect, render_template, request, url_for

from core import OnTurnBaseApp
from dashboard import DashboardView
from router import Section, ViewRouter
from stores import EntityStore, ValidationError

logger = logging.getLogger(__name__)


def _form(*fields: str) -> Dict[str, str]:
    return {name: request.form.get(name, "").strip() for name in fields}


class OnTurnApp(OnTurnBaseApp):
    """Dashboard routes on top of the base application"""

    def __init__(self, config: Optional[Mapping[str, Any]] = None):
        super().__init__(config)
        self.dashboard = DashboardView(self.schedules, self.clients, self.services)
        self._register_routes()

    # =========================
    # Section pages
    # =========================
    def _page(self, template: str, router: ViewRouter, **context) -> str:
        return render_template(
            template,
            sections=router.sections,
            active=router.active,
            **context,
        )

    def _editing(self, store: EntityStore) -> Optional[Dict[str, Any]]:
        record_id = request.args.get("edit", type=int)
        return store.get(record_id) if record_id is not None else None

    def _show_form(self, editing) -> bool:
        return editing is not None or request.args.get("new") == "1"

    def _dashboard_page(self, router: ViewRouter) -> str:
        return self._page(
            "dashboard.html",
            router,
            stats=self.dashboard.summary(),
            appointments=self.dashboard.todays_appointments(),
        )

    def _schedules_page(self, router: ViewRouter) -> str:
        day = request.args.get("date", "").strip()
        try:
            day = date.fromisoformat(day).isoformat()
        except ValueError:
            day = date.today().isoformat()

        editing = self._editing(self.schedules)
        appointments = sorted(self.schedules.for_date(day), key=lambda r: str(r.get("time", "")))
        return self._page(
            "schedules.html",
            router,
            day=day,
            appointments=appointments,
            day_stats=self.schedules.day_stats(day),
            statuses=self.schedules.statuses,
            editing=editing,
            show_form=self._show_form(editing),
            client_names=self.form_options.client_names,
            service_names=self.form_options.service_names,
        )

    def _clients_page(self, router: ViewRouter) -> str:
        term = request.args.get("q", "")
        editing = self._editing(self.clients)
        return self._page(
            "clients.html",
            router,
            term=term,
            clients=self.clients.search(term),
            editing=editing,
            show_form=self._show_form(editing),
        )

    def _services_page(self, router: ViewRouter) -> str:
        editing = self._editing(self.services)
        return self._page(
            "services.html",
            router,
            services=self.services.list(),
            editing=editing,
            show_form=self._show_form(editing),
        )

    def _reminders_page(self, router: ViewRouter) -> str:
        editing = self._editing(self.reminders)
        return self._page(
            "reminders.html",
            router,
            reminders=self.reminders.list(),
            counts=self.reminders.status_counts(),
            editing=editing,
            show_form=self._show_form(editing),
            service_names=self.form_options.service_names,
        )

    # =========================
    # Mutations
    # =========================
    def _save(self, store: EntityStore, section: Section, record_id: Optional[int],
              data: Dict[str, Any], **back) -> Any:
        """Create or update, flash the outcome, redirect back to the section"""
        label = store.label
        try:
            if record_id is None:
                store.create(data)
                flash(f"{label} {store.created_verb}", "success")
            elif store.update(record_id, data) is not None:
                flash(f"{label} updated", "success")
        except ValidationError as e:
            flash(str(e), "error")
            form_args = {"edit": record_id} if record_id is not None else {"new": 1}
            return redirect(url_for("index", section=section.slug, **form_args, **back))

        return redirect(url_for("index", section=section.slug, **back))

    def _delete(self, store: EntityStore, section: Section, record_id: int, **back):
        if store.delete(record_id):
            flash(f"{store.label} deleted", "success")
        return redirect(url_for("index", section=section.slug, **back))

    # =========================
    # Routes
    # =========================
    def _register_routes(self):
        app = self.app

        @app.route("/")
        def index() -> str:
            router = ViewRouter()
            router.select(request.args.get("section"))
            router.register(Section.DASHBOARD, lambda: self._dashboard_page(router))
            router.register(Section.SCHEDULES, lambda: self._schedules_page(router))
            router.register(Section.CLIENTS, lambda: self._clients_page(router))
            router.register(Section.SERVICES, lambda: self._services_page(router))
            router.register(Section.REMINDERS, lambda: self._reminders_page(router))
            return router.render()

        @app.route("/health")
        def health():
            return jsonify({
                "status": "ok",
                "records": {store.key: len(store) for store in self.stores},
            })

        # ---- clients ----

        @app.route("/clients", methods=["POST"])
        @app.route("/clients/<int:record_id>", methods=["POST"])
        def save_client(record_id: Optional[int] = None):
            data = _form("name", "email", "phone")
            return self._save(self.clients, Section.CLIENTS, record_id, data)

        @app.route("/clients/<int:record_id>/delete", methods=["POST"])
        def delete_client(record_id: int):
            return self._delete(self.clients, Section.CLIENTS, record_id)

        # ---- services ----

        @app.route("/services", methods=["POST"])
        @app.route("/services/<int:record_id>", methods=["POST"])
        def save_service(record_id: Optional[int] = None):
            data = _form("name", "category", "duration", "price", "description")
            return self._save(self.services, Section.SERVICES, record_id, data)

        @app.route("/services/<int:record_id>/delete", methods=["POST"])
        def delete_service(record_id: int):
            return self._delete(self.services, Section.SERVICES, record_id)

        # ---- schedules ----

        @app.route("/schedules", methods=["POST"])
        @app.route("/schedules/<int:record_id>", methods=["POST"])
        def save_schedule(record_id: Optional[int] = None):
            data = _form("client", "service", "date", "time")
            back = {"date": data["date"]} if data["date"] else {}
            return self._save(self.schedules, Section.SCHEDULES, record_id, data, **back)

        @app.route("/schedules/<int:record_id>/status", methods=["POST"])
        def schedule_status(record_id: int):
            status = request.form.get("status", "").strip()
            record = self.schedules.get(record_id)
            try:
                if self.schedules.set_status(record_id, status) is not None:
                    flash(f"Appointment status changed to {status}.", "success")
            except ValidationError as e:
                flash(str(e), "error")

            back = {"date": record["date"]} if record and record.get("date") else {}
            return redirect(url_for("index", section=Section.SCHEDULES.slug, **back))

        @app.route("/schedules/<int:record_id>/delete", methods=["POST"])
        def delete_schedule(record_id: int):
            record = self.schedules.get(record_id)
            back = {"date": record["date"]} if record and record.get("date") else {}
            return self._delete(self.schedules, Section.SCHEDULES, record_id, **back)

        # ---- reminders ----

        @app.route("/reminders", methods=["POST"])
        @app.route("/reminders/<int:record_id>", methods=["POST"])
        def save_reminder(record_id: Optional[int] = None):
            data = _form("client", "service", "message")
            data["scheduled_time"] = request.form.get("time", "").strip()
            return self._save(self.reminders, Section.REMINDERS, record_id, data)

        @app.route("/reminders/<int:record_id>/send", methods=["POST"])
        def send_reminder(record_id: int):
            # no delivery, the reminder is only flagged
            if self.reminders.mark_sent(record_id) is not None:
                flash("The reminder has been marked as sent.", "success")
            return redirect(url_for("index", section=Section.REMINDERS.slug))

        @app.route("/reminders/<int:record_id>/delete", methods=["POST"])
        def delete_reminder(record_id: int):
            return self._delete(self.reminders, Section.REMINDERS, record_id)


def create_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    return OnTurnApp(config).app


# =========================
# Run
# =========================
if __name__ == "__main__":
    onturn = OnTurnApp()
    logger.info("Starting onTurn dashboard...")
    onturn.run(debug=True)
