from __future__ import annotations

from compliance_hub.models.disclosure_form_template import DisclosureFormTemplate


def _issue(path: str, code: str, message: str) -> dict:
    return {"path": path, "code": code, "message": message}


def _calculated_cycles(calculated: list[dict]) -> list[list[str]]:
    """
    Cycles among calculated fields, following dependencies that are
    themselves calculated keys. Each cycle is reported once.
    """
    calculated_keys = {c["key"] for c in calculated}
    graph = {c["key"]: [d for d in c.get("dependencies") or [] if d in calculated_keys] for c in calculated}
    WHITE, GREY, BLACK = 0, 1, 2
    color = {k: WHITE for k in graph}
    cycles: list[list[str]] = []

    # iterative DFS; dependency chains can be arbitrarily long
    for root in graph:
        if color[root] != WHITE:
            continue
        path: list[str] = [root]
        pending = [iter(graph[root])]
        color[root] = GREY
        while pending:
            dep = next(pending[-1], None)
            if dep is None:
                color[path.pop()] = BLACK
                pending.pop()
            elif color[dep] == GREY:
                cycles.append(path[path.index(dep):] + [dep])
            elif color[dep] == WHITE:
                color[dep] = GREY
                path.append(dep)
                pending.append(iter(graph[dep]))
    return cycles


def check_form_schema(template: DisclosureFormTemplate) -> tuple[list[dict], list[dict]]:
    """
    Semantic lint over a stored schema. Returns (errors, warnings).

    Shape is already enforced when the schema is written; this looks at
    cross-references the write path accepts without checking. Results are
    advisory and never block update or publish.
    """
    fields: list[dict] = template.fields or []
    sections: list[dict] = template.sections or []
    calculated: list[dict] = template.calculated_fields or []
    rules: list[dict] = template.validation_rules or []

    errors: list[dict] = []
    warnings: list[dict] = []

    field_ids = {f["id"] for f in fields}
    field_keys = {f["key"] for f in fields}
    calculated_keys = {c["key"] for c in calculated}
    known_keys = field_keys | calculated_keys

    # calculated keys share the answer namespace with field keys
    for i, c in enumerate(calculated):
        if c["key"] in field_keys:
            errors.append(
                _issue(f"calculated_fields[{i}].key", "duplicate_key", f"'{c['key']}' is already a field key")
            )

    def check_conditional(cond: dict, path: str) -> None:
        target = cond["if"]["field"]
        if target not in known_keys:
            errors.append(_issue(f"{path}.if.field", "unknown_key", f"Condition references unknown key '{target}'"))

    for i, f in enumerate(fields):
        for j, cond in enumerate(f.get("conditionals") or []):
            check_conditional(cond, f"fields[{i}].conditionals[{j}]")

        cascade_from = (f.get("config") or {}).get("cascade_from")
        if cascade_from and cascade_from not in field_keys:
            errors.append(
                _issue(
                    f"fields[{i}].config.cascade_from",
                    "unknown_key",
                    f"Cascade source '{cascade_from}' is not a field key",
                )
            )

    placed: dict[str, str] = {}
    for i, s in enumerate(sections):
        section_field_ids = s.get("fields") or []
        for j, fid in enumerate(section_field_ids):
            path = f"sections[{i}].fields[{j}]"
            if fid not in field_ids:
                errors.append(_issue(path, "unknown_field", f"Section references unknown field id '{fid}'"))
            elif fid in placed:
                warnings.append(_issue(path, "duplicate_placement", f"Field '{fid}' is also placed in {placed[fid]}"))
            else:
                placed[fid] = f"sections[{i}]"

        if s.get("conditional"):
            check_conditional(s["conditional"], f"sections[{i}].conditional")

        repeater = s.get("repeater")
        if not repeater:
            continue

        levels = [(f"sections[{i}].repeater", repeater)]
        for k, nested in enumerate(repeater.get("nested_repeaters") or []):
            nested_path = f"sections[{i}].repeater.nested_repeaters[{k}]"
            if nested["field_id"] not in section_field_ids:
                errors.append(
                    _issue(
                        f"{nested_path}.field_id",
                        "unknown_field",
                        f"Nested repeater field '{nested['field_id']}' is not in this section",
                    )
                )
            levels.append((f"{nested_path}.config", nested["config"]))

        for level_path, level in levels:
            for k, agg in enumerate(level.get("aggregate") or []):
                if agg["source_field"] not in field_keys:
                    errors.append(
                        _issue(
                            f"{level_path}.aggregate[{k}].source_field",
                            "unknown_key",
                            f"Aggregate source '{agg['source_field']}' is not a field key",
                        )
                    )
                if agg["target_field"] not in known_keys:
                    warnings.append(
                        _issue(
                            f"{level_path}.aggregate[{k}].target_field",
                            "unbound_target",
                            f"Aggregate target '{agg['target_field']}' is not a declared field",
                        )
                    )

    for i, c in enumerate(calculated):
        for j, dep in enumerate(c.get("dependencies") or []):
            if dep not in known_keys:
                errors.append(
                    _issue(
                        f"calculated_fields[{i}].dependencies[{j}]",
                        "unknown_key",
                        f"Calculated field depends on unknown key '{dep}'",
                    )
                )

    for cycle in _calculated_cycles(calculated):
        errors.append(_issue("calculated_fields", "dependency_cycle", "Dependency cycle: " + " -> ".join(cycle)))

    # left operands may be expressions, so unknown keys only warn
    for i, r in enumerate(rules):
        left = r["condition"]["left"]
        if left not in known_keys:
            warnings.append(
                _issue(f"validation_rules[{i}].condition.left", "unknown_key", f"'{left}' is not a known key")
            )

    return errors, warnings
