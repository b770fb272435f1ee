"""FastAPI routes exposing the resolver's public queries."""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from depwatch.errors import DepwatchError, InputError
from depwatch.impact import analyze_file_impact
from depwatch.web.state import state

router = APIRouter(prefix="/api")


# --- Request models ---

class OwnsRequest(BaseModel):
    root: str
    handler: str
    path: str
    event: str = "check"
    tags: list[str] = []

class ReverseDepsRequest(BaseModel):
    root: str
    targets: list[str]
    source: str = "./..."
    tags: list[str] = []

class ImpactRequest(BaseModel):
    root: str
    handler: str
    path: str
    file_name: str | None = None
    event: str = "write"
    tags: list[str] = []


# --- Helpers ---

def _validate_root(p: str) -> Path:
    """Ensure the root is an existing directory under an allowed root."""
    resolved = Path(p).expanduser().resolve()
    if not resolved.is_dir():
        raise HTTPException(404, f"Root not found: {resolved}")
    if not state.is_allowed(resolved):
        raise HTTPException(403, "Root must be under an allowed directory")
    return resolved


def _raise_for(exc: DepwatchError) -> None:
    if isinstance(exc, InputError):
        raise HTTPException(400, str(exc))
    raise HTTPException(422, str(exc))


# --- Endpoints ---

@router.post("/owns")
def owns(req: OwnsRequest):
    root = _validate_root(req.root)
    with state.lock:
        resolver = state.get_resolver(root, req.tags)
        try:
            owned = resolver.owns_file(req.handler, req.path, req.event)
        except DepwatchError as e:
            _raise_for(e)
    return {"handler": req.handler, "path": req.path, "event": req.event, "owned": owned}


@router.get("/entry-points")
def entry_points(root: str = Query(...), file_name: str = Query(...)):
    resolved = _validate_root(root)
    with state.lock:
        resolver = state.get_resolver(resolved)
        try:
            mains = resolver.units_depending_on_file(file_name)
        except DepwatchError as e:
            _raise_for(e)
    return {"file_name": file_name, "entry_points": mains}


@router.post("/reverse-deps")
def reverse_deps(req: ReverseDepsRequest):
    root = _validate_root(req.root)
    if not req.targets:
        raise HTTPException(400, "targets cannot be empty")
    with state.lock:
        resolver = state.get_resolver(root, req.tags)
        try:
            units = resolver.reverse_dependents(req.source, req.targets)
        except DepwatchError as e:
            _raise_for(e)
    return {"source": req.source, "targets": req.targets, "units": units}


@router.post("/impact")
def impact(req: ImpactRequest):
    root = _validate_root(req.root)
    file_name = req.file_name or Path(req.path).name
    with state.lock:
        resolver = state.get_resolver(root, req.tags)
        try:
            result = analyze_file_impact(resolver, req.handler, file_name, req.path, req.event)
        except DepwatchError as e:
            _raise_for(e)
    return result.to_dict()


@router.get("/units")
def units(root: str = Query(...)):
    resolved = _validate_root(root)
    with state.lock:
        resolver = state.get_resolver(resolved)
        try:
            resolver.cache.ensure_populated()
        except DepwatchError as e:
            _raise_for(e)
        cache = resolver.cache
        items = [
            {
                "identity": identity,
                "kind": unit.kind.value,
                "directory": str(unit.directory) if unit.directory else None,
                "dependencies": sorted(cache.graph.dependencies_of(identity)),
                "files": len(unit.files),
            }
            for identity, unit in sorted(cache.units.items())
        ]
    return {"count": len(items), "units": items}


@router.delete("/resolvers")
def delete_resolvers(root: str = Query(...)):
    """Drop the cached resolvers of a root so the next query rescans it."""
    resolved = Path(root).expanduser().resolve()
    if not state.drop_resolvers(resolved):
        raise HTTPException(404, "No resolver for this root")
    return {"deleted": str(resolved)}
