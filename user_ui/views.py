from __future__ import annotations

from django.shortcuts import render
from django.http import HttpRequest, HttpResponse

from user_ui.forms import ReorderConfigForm
from user_ui.services import (
    ServiceError,
    preview_yaml,
    run_dry_run,
    run_rewrite,
)


_TEMPLATE = "user_ui/index.html"


def index(request: HttpRequest) -> HttpResponse:
    yaml_preview_text: str | None = None
    command_result = None
    action: str | None = None

    if request.method != "POST":
        context = {
            "form": ReorderConfigForm(),
            "yaml_preview_text": None,
            "command_result": None,
            "action": None,
        }
        return render(request, _TEMPLATE, context)

    action = (request.POST.get("action") or "").strip()
    form = ReorderConfigForm(request.POST)

    if form.is_valid():
        cleaned = form.cleaned_data

        try:
            if action == "preview_yaml":
                yaml_preview_text = preview_yaml(cleaned)

            elif action == "dry_run":
                command_result = run_dry_run(cleaned, hash_len=12)

            elif action == "rewrite":
                if not cleaned.get("confirm_rewrite"):
                    form.add_error(
                        "confirm_rewrite",
                        "You must confirm the rewrite before execution",
                    )
                else:
                    command_result = run_rewrite(cleaned)

            else:
                form.add_error(None, "Unknown action")

        except ServiceError as e:
            form.add_error(None, str(e))

    context = {
        "form": form,
        "yaml_preview_text": yaml_preview_text,
        "command_result": command_result,
        "action": action,
    }
    return render(request, _TEMPLATE, context)
