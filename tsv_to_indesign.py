# -*- coding: utf-8 -*-
"""
tsv_to_indesign.py
- Reads tab-separated records (age, population, sex, disease, name, synonyms,
  tissue of origin), composes one group of up to three paragraphs per record
  and flows the groups into an InDesign template.
- Each group's sizing line is grown to the widest size that still fits one
  line; groups that overflow a frame move whole to a new page behind a frame
  break.
- Windows drives InDesign over COM (pywin32). --dry-run runs the same merge
  against the built-in preview layout on any platform and writes a text proof.
"""
from __future__ import annotations

import os
import sys
import time
import argparse
import logging
from typing import Optional

from frame_breaks import repair_frame_ends
from layout_config import ConfigError, LayoutConfig, load_config
from paginator import Paginator
from pipeline_logger import PipelineLogger
from preview_layout import PreviewLayout
from records import DataFileError, compose_groups, read_records
from surfaces import HostUnavailableError
from template_styles import TemplateError, is_idml, missing_styles, read_paragraph_styles, style_sizes

EXIT_OK = 0
EXIT_BAD_INPUT = 2
EXIT_NO_HOST = 3

PIPELINE_LOGGER: Optional[PipelineLogger] = None


def _log_user(message: str):
    print(message)
    if PIPELINE_LOGGER:
        PIPELINE_LOGGER.user(message)


def _log_warn(message: str):
    print(message)
    if PIPELINE_LOGGER:
        PIPELINE_LOGGER.warn(message)


def _log_error(message: str):
    print(message, file=sys.stderr)
    if PIPELINE_LOGGER:
        PIPELINE_LOGGER.error(message)


def _debug_log(message: str):
    if PIPELINE_LOGGER:
        PIPELINE_LOGGER.debug(message)


def _event(message: str):
    if PIPELINE_LOGGER:
        PIPELINE_LOGGER.event(message)
        PIPELINE_LOGGER.warn(message)
    else:
        print(message)


def _write_progress(done: int, total: int):
    final = done >= total
    sys.stdout.write(f"\r[PROGRESS] {done}/{total}")
    if final:
        sys.stdout.write("\n")
    sys.stdout.flush()


class _PipelineLogHandler(logging.Handler):
    """Forwards library logging records into the pipeline debug log."""

    def emit(self, record):
        try:
            msg = record.getMessage()
        except Exception:
            msg = str(record.msg)
        if PIPELINE_LOGGER and PIPELINE_LOGGER.enable_debug:
            PIPELINE_LOGGER.debug(f"[{record.name}] {msg}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="TSV records -> auto-fit paragraphs flowed across InDesign pages"
    )
    parser.add_argument("data", nargs="?", help="Input .tsv path (default: data_path from config)")
    parser.add_argument("--template", "-t", dest="template", default=None, help="Template .indt/.indd/.idml")
    parser.add_argument("--out", "-o", dest="out", default=None, help="Output document path (proof .txt in --dry-run)")
    parser.add_argument("--config", default=None, help="JSON file with LayoutConfig overrides")
    parser.add_argument("--limit", type=int, default=None, help="Read at most N rows (0 = all)")
    parser.add_argument("--fine-increment", type=float, default=None, help="Fine point-size step")
    parser.add_argument("--coarse-increment", type=float, default=None, help="Coarse point-size step")
    parser.add_argument("--max-point-size", type=float, default=None)
    parser.add_argument("--min-point-size", type=float, default=None)
    parser.add_argument("--spacing", type=float, default=None, help="Points between groups")
    parser.add_argument("--checkpoint-every", type=int, default=None, help="Save every N groups (0 = off)")
    parser.add_argument("--strategy", choices=("fine", "coarse"), default=None, help="Point-size search")
    parser.add_argument("--fit-check", choices=("lines", "contents"), default=None, help="Wrap detection")
    parser.add_argument("--breaking-names", dest="nonbreaking_names", action="store_const", const=False,
                        default=None, help="Allow names lines to wrap inside a name")
    parser.add_argument("--dry-run", action="store_true", help="Use the preview layout instead of InDesign")
    parser.add_argument("--repair-breaks", action="store_true", help="Run the frame-end repair pass afterwards")
    parser.add_argument("--log-dir", help="Log directory (default: <data dir>/logs)")
    parser.add_argument("--debug-log", action="store_true", help="Enable debug logging")
    parser.add_argument("--event-log", default=None, help="Append-only event log path")
    return parser


def resolve_config(args) -> LayoutConfig:
    cfg = load_config(args.config)
    return cfg.with_overrides(
        data_path=args.data,
        template_path=args.template,
        output_path=args.out,
        row_limit=args.limit,
        fine_increment=args.fine_increment,
        coarse_increment=args.coarse_increment,
        max_point_size=args.max_point_size,
        min_point_size=args.min_point_size,
        spacing=args.spacing,
        checkpoint_interval=args.checkpoint_every,
        search_strategy=args.strategy,
        fit_check=args.fit_check,
        nonbreaking_names=args.nonbreaking_names,
        event_log_path=args.event_log,
    )


def _default_output(cfg: LayoutConfig, dry_run: bool) -> str:
    base = os.path.splitext(os.path.abspath(cfg.data_path))[0]
    return base + (".proof.txt" if dry_run else ".indd")


def _preview_layout(cfg: LayoutConfig) -> PreviewLayout:
    layout = PreviewLayout(spacing=cfg.spacing)
    if is_idml(cfg.template_path) and os.path.exists(cfg.template_path):
        sizes = style_sizes(read_paragraph_styles(cfg.template_path))
        layout.style_sizes.update(sizes)
        _debug_log(f"[TEMPLATE] preview style sizes {layout.style_sizes}")
    return layout


def _check_template(cfg: LayoutConfig):
    if not is_idml(cfg.template_path):
        _debug_log(f"[TEMPLATE] {cfg.template_path} is not IDML; styles are checked by InDesign")
        return
    styles = read_paragraph_styles(cfg.template_path)
    missing = missing_styles(styles)
    if missing:
        raise TemplateError(f"template lacks paragraph styles: {', '.join(missing)}")


def main(argv=None) -> int:
    global PIPELINE_LOGGER
    start_ts = time.time()
    args = build_parser().parse_args(argv)

    try:
        cfg = resolve_config(args)
    except ConfigError as e:
        _log_error(f"[ERR] config: {e}")
        return EXIT_BAD_INPUT

    data_path = os.path.abspath(cfg.data_path)
    PIPELINE_LOGGER = PipelineLogger(
        data_path,
        log_root=args.log_dir,
        enable_debug=args.debug_log,
        console_echo=False,
        event_log_path=cfg.event_log_path,
    )
    if args.debug_log:
        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)
        root_logger.addHandler(_PipelineLogHandler())
        PIPELINE_LOGGER.describe_paths()

    output_path = os.path.abspath(cfg.output_path or _default_output(cfg, args.dry_run))
    PIPELINE_LOGGER.user(
        f"[ARGS] data={data_path} template={cfg.template_path} out={output_path} limit={cfg.row_limit} "
        f"strategy={cfg.search_strategy} fit={cfg.fit_check} fine={cfg.fine_increment} "
        f"coarse={cfg.coarse_increment} max={cfg.max_point_size} min={cfg.min_point_size} "
        f"spacing={cfg.spacing} checkpoint={cfg.checkpoint_interval} dry_run={args.dry_run}"
    )

    try:
        records = read_records(data_path, cfg.row_limit)
    except DataFileError as e:
        _log_error(f"[ERR] {e}")
        return EXIT_BAD_INPUT
    groups = compose_groups(records)
    _log_user(f"[INFO] read {len(records)} records; {sum(1 for g in groups if g.lines)} groups to place")

    try:
        if args.dry_run:
            layout = _preview_layout(cfg)
        else:
            if not os.path.exists(cfg.template_path):
                _log_error(f"[ERR] template not found: {os.path.abspath(cfg.template_path)}")
                return EXIT_BAD_INPUT
            _check_template(cfg)
            if not sys.platform.startswith("win"):
                raise HostUnavailableError("InDesign automation needs Windows COM; use --dry-run elsewhere")
            from indesign_layout import InDesignLayout
            layout = InDesignLayout.open(cfg.template_path, output_path=output_path, spacing=cfg.spacing)
    except TemplateError as e:
        _log_error(f"[ERR] {e}")
        return EXIT_BAD_INPUT
    except HostUnavailableError as e:
        _log_error(f"[ERR] {e}")
        return EXIT_NO_HOST

    paginator = Paginator(layout, cfg, event=_event, progress=_write_progress if groups else None)
    report = paginator.run(groups)

    breaks_repaired = 0
    if args.repair_breaks:
        breaks_repaired = repair_frame_ends(layout, event=_event)
        layout.save(checkpoint=False)
        _log_user(f"[INFO] frame-end repair inserted {breaks_repaired} breaks")

    if args.dry_run:
        with open(output_path, "w", encoding="utf-8") as fh:
            fh.write(layout.render_proof())
        _debug_log(f"[PROOF] written {output_path}")
    else:
        layout.close()

    elapsed = time.time() - start_ts
    _log_user(f"[OUTPUT] {output_path}")
    _log_user(
        f"[REPORT][SUMMARY] records={len(records)} {report.summary()} "
        f"repairedBreaks={breaks_repaired} elapsed={elapsed:.2f}s"
    )
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
