#!/usr/bin/env python3
"""
CLI wrapper for the Harmonic Mapper.

Usage:
    python tools/harmonic.py list                           # show the function library
    python tools/harmonic.py spiral                         # canonical configuration
    python tools/harmonic.py spiral --functions s_n,m_n --q 0.5 --out spiral.json
    python tools/harmonic.py pca --config state.json --n-max 200
    python tools/harmonic.py pca --series sunspots.csv --functions s_n,real_world
    python tools/harmonic.py save-config state.json --phi 1.0 --alf -1
"""

import argparse
import dataclasses
import json
import os
import sys
import numpy as np

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, ROOT)

from harmonic_mapper import (
    CANONICAL_STATE, REAL_WORLD_ID, MappingMode, build_sample_matrix,
    get_functions, project_spiral, reduce_dimensions,
)


def build_state(args):
    """Configuration file (or canonical state) overridden by CLI flags."""
    from tools.state_io import load_state, load_series

    state = load_state(args.config) if args.config else CANONICAL_STATE.replace()
    overrides = {
        'n_min': args.n_min, 'n_max': args.n_max, 'phi': args.phi,
        'psi': args.psi, 'alf': args.alf, 'q': args.q,
    }
    params = dataclasses.replace(
        state.parameters, **{k: v for k, v in overrides.items() if v is not None})

    changes = {'parameters': params}
    if args.functions:
        changes['active_function_ids'] = [s.strip() for s in args.functions.split(',') if s.strip()]
    if args.series:
        changes['real_world_data'] = load_series(args.series, name=args.series_name)
    return state.replace(**changes)


def check_ids(state):
    known = {f.id for f in get_functions()} | {REAL_WORLD_ID}
    unknown = [i for i in state.active_function_ids if i not in known]
    if unknown:
        print(f"Unknown function(s): {', '.join(unknown)}")
        print(f"Available: {', '.join(sorted(known))}")
        return False
    return True


def write_result(doc, out):
    with open(out, 'w') as f:
        json.dump(doc, f, indent=2, allow_nan=False)
    print(f"\nWrote {out}")


def cmd_list(args):
    """Show every library function."""
    funcs = get_functions()
    print(f"\n{'Id':<10s} {'Name':<16s} {'Family':<26s} Description")
    print("-" * 90)
    for f in funcs:
        print(f"  {f.id:<8s} {f.name:<16s} {f.family.value:<26s} {f.description}")
    print(f"\nTotal: {len(funcs)} functions  (+ '{REAL_WORLD_ID}' when a series is supplied)")


def cmd_spiral(args):
    state = build_state(args).replace(map_mode=MappingMode.SPIRAL)
    if not check_ids(state):
        return 1
    p = state.parameters
    series = project_spiral(build_sample_matrix(state), p)

    print(f"\nLog-Polar Spiral  n=[{p.n_min}, {p.n_max}]  phi={p.phi} psi={p.psi} "
          f"alf={p.alf} q={p.q}")
    if not series:
        print("  (empty: no active functions or empty index range)")
    for s in series:
        r = np.hypot([pt.x for pt in s.data], [pt.y for pt in s.data])
        finite = np.isfinite(r)
        r_max = r[finite].max() if finite.any() else float('nan')
        print(f"  {s.id:<10s} {s.name:<16s} points={len(s.data):<6d} "
              f"max|r|={r_max:.4g}  non-finite={int((~finite).sum())}")

    if args.out:
        write_result({'state': state.to_dict(), 'series': [s.to_dict() for s in series]},
                     args.out)
    return 0


def cmd_pca(args):
    state = build_state(args).replace(map_mode=MappingMode.PCA)
    if not check_ids(state):
        return 1
    matrix = build_sample_matrix(state)
    points, model = reduce_dimensions(matrix, return_model=True)

    p = state.parameters
    print(f"\nHypercube Projection  n=[{p.n_min}, {p.n_max}]  "
          f"functions={[f.name for f in matrix.functions]}")
    if not points:
        print("  (empty: needs at least 2 active functions and a non-empty range)")
    elif model is not None:
        ratios = list(model.explained_variance_ratio_) + [0.0] * (2 - model.n_components_)
        print(f"  PCA variance explained: PC1={ratios[0]:.1%}, PC2={ratios[1]:.1%}")
        print(f"  {len(points)} trajectory points")

    if args.out:
        write_result({'state': state.to_dict(), 'points': [pt.to_dict() for pt in points]},
                     args.out)
    return 0


def cmd_save_config(args):
    from tools.state_io import save_state

    state = build_state(args)
    if not check_ids(state):
        return 1
    path = save_state(state, args.path)
    print(f"Wrote {path}")
    return 0


def add_state_args(p):
    p.add_argument('--config', help='JSON configuration (default: canonical state)')
    p.add_argument('--n-min', type=int, dest='n_min')
    p.add_argument('--n-max', type=int, dest='n_max')
    p.add_argument('--phi', type=float, help='Angular velocity per unit index')
    p.add_argument('--psi', type=float, help='Phase offset')
    p.add_argument('--alf', type=float, help='Radial scaling exponent (scale = 10^alf)')
    p.add_argument('--q', type=float, help='Coupling strength')
    p.add_argument('--functions', help='Comma-separated active function ids')
    p.add_argument('--series', help='Numeric column file used as real_world')
    p.add_argument('--series-name', dest='series_name', help='Display name for --series')


def main(argv=None):
    parser = argparse.ArgumentParser(description='Harmonic Mapper CLI')
    sub = parser.add_subparsers(dest='command')

    sub.add_parser('list', help='Show the function library')

    p_spiral = sub.add_parser('spiral', help='Log-polar spiral projection')
    add_state_args(p_spiral)
    p_spiral.add_argument('--out', help='Write the result document here')

    p_pca = sub.add_parser('pca', help='Principal-component trajectory')
    add_state_args(p_pca)
    p_pca.add_argument('--out', help='Write the result document here')

    p_save = sub.add_parser('save-config', help='Write the assembled configuration')
    p_save.add_argument('path')
    add_state_args(p_save)

    args = parser.parse_args(argv)

    try:
        if args.command == 'list':
            cmd_list(args)
            return 0
        elif args.command == 'spiral':
            return cmd_spiral(args)
        elif args.command == 'pca':
            return cmd_pca(args)
        elif args.command == 'save-config':
            return cmd_save_config(args)
    except (OSError, ValueError) as e:
        print(f"Error: {e}")
        return 1
    parser.print_help()
    return 0


if __name__ == '__main__':
    sys.exit(main())
