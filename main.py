from pathlib import Path
from typing import List, Optional

import numpy as np
import typer

from embedding_output import (
    ByName,
    ByOrder,
    OnlyOne,
    OutputError,
    OutputPrecedence,
    SingleBatchOutput,
    build_flat_transformer,
    build_structured_transformer,
    get_spec,
    list_available_models,
)
from embedding_output.embeddings import validate_pooling
from embedding_output.outputs.keys import OutputKey

app = typer.Typer()


def parse_output_key(value: str) -> OutputKey:
    """Translate a CLI token into an output key (only-one, order:N, or a name)."""
    if value == "only-one":
        return OnlyOne()
    if value.startswith("order:"):
        index = value.split(":", 1)[1]
        if not index.isdigit():
            raise typer.BadParameter(f"Invalid order key '{value}'; expected order:<index>.")
        return ByOrder(int(index))
    return ByName(value)


def resolve_config(
    model: Optional[str],
    output_keys: List[str],
    pooling: Optional[str],
) -> tuple[OutputPrecedence, Optional[str]]:
    """Merge a registry preset with explicit CLI overrides."""
    precedence: Optional[OutputPrecedence] = None
    resolved_pooling = pooling
    if model:
        try:
            spec = get_spec(model)  # type: ignore[arg-type]
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
        precedence = spec.resolved_precedence()
        if resolved_pooling is None:
            resolved_pooling = spec.pooling

    if output_keys:
        precedence = OutputPrecedence(parse_output_key(key) for key in output_keys)
    if precedence is None:
        raise typer.BadParameter("Pass --model or at least one --output-key.")

    try:
        validate_pooling(resolved_pooling)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    return precedence, resolved_pooling


def load_batches(paths: List[Path], mask_key: str) -> List[SingleBatchOutput]:
    """Read one SingleBatchOutput per .npz archive (array names are output names)."""
    batches: List[SingleBatchOutput] = []
    for path in paths:
        with np.load(path) as archive:
            arrays = {name: archive[name] for name in archive.files}
        mask = arrays.pop(mask_key, None)
        try:
            batches.append(SingleBatchOutput(outputs=arrays, attention_mask=mask))
        except OutputError as exc:
            raise typer.BadParameter(f"{path}: {exc}") from exc
    return batches


@app.command()
def models() -> None:
    """
    List the registered model presets.
    """
    for key in list_available_models():
        spec = get_spec(key)  # type: ignore[arg-type]
        print(f"{key}\t{spec.hf_id}\tkind={spec.kind}\tpooling={spec.pooling}")


@app.command()
def inspect(
    batch_files: List[Path] = typer.Argument(..., exists=True, dir_okay=False, help="Batch .npz files."),
    model: Optional[str] = typer.Option(None, "--model", help="Registry preset to take defaults from."),
    output_key: List[str] = typer.Option(
        [],
        "--output-key",
        help="Output key in precedence order (only-one, order:N, or an output name).",
    ),
    pooling: Optional[str] = typer.Option(None, "--pooling", help="Pooling strategy (cls, mean, last_token)."),
    mask_key: str = typer.Option("attention_mask", "--mask-key", help="Array holding the attention mask."),
) -> None:
    """
    Report which output each batch resolves to and the pooled shape.
    """
    precedence, resolved_pooling = resolve_config(model, output_key, pooling)
    for path, batch in zip(batch_files, load_batches(batch_files, mask_key)):
        try:
            name, tensor = batch.select_output(precedence)
            rows, cols = batch.select_and_pool_output(precedence, resolved_pooling).dim()
        except OutputError as exc:
            print(f"[inspect] {path.name}: error: {exc}")
            raise typer.Exit(code=1) from exc
        print(f"[inspect] {path.name}: output={name} shape={tuple(tensor.shape)} pooled=({rows}, {cols})")


@app.command()
def embed(
    batch_files: List[Path] = typer.Argument(..., exists=True, dir_okay=False, help="Batch .npz files."),
    output: Path = typer.Option(..., "--output", "-o", help="Destination .npy file."),
    model: Optional[str] = typer.Option(None, "--model", help="Registry preset to take defaults from."),
    output_key: List[str] = typer.Option(
        [],
        "--output-key",
        help="Output key in precedence order (only-one, order:N, or an output name).",
    ),
    pooling: Optional[str] = typer.Option(None, "--pooling", help="Pooling strategy (cls, mean, last_token)."),
    flat: bool = typer.Option(False, "--flat", help="Use the flat-buffer aggregator."),
    normalize: bool = typer.Option(True, help="Normalize rows (flat aggregator only)."),
    mask_key: str = typer.Option("attention_mask", "--mask-key", help="Array holding the attention mask."),
) -> None:
    """
    Turn raw batch outputs into embeddings and save them as a (rows, dim) array.
    """
    precedence, resolved_pooling = resolve_config(model, output_key, pooling)
    batches = load_batches(batch_files, mask_key)

    try:
        if flat:
            result = build_flat_transformer(precedence, resolved_pooling, normalize=normalize)(batches)
            matrix = result.as_matrix()
        else:
            embeddings = build_structured_transformer(precedence, resolved_pooling)(batches)
            matrix = np.stack(embeddings) if embeddings else np.empty((0, 0), dtype=np.float32)
    except OutputError as exc:
        print(f"[embed] error: {exc}")
        raise typer.Exit(code=1) from exc

    output.parent.mkdir(parents=True, exist_ok=True)
    np.save(output, matrix)
    print(f"[embed] Saved {matrix.shape[0]} embeddings of dim {matrix.shape[1]} → {output}")


if __name__ == "__main__":
    app()
