import os
import sys
import argparse
import logging
import warnings

from pyGTFSInterpolator.models import StopTimes
from pyGTFSInterpolator.interpolation import INTERPOLATION_METHODS

logger = logging.getLogger("pyGTFSInterpolator")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Interpolate missing stop times of a GTFS feed.")

    # Mandatory
    parser.add_argument('--gtfs_folder', required=True, help='Folder of the GTFS feed (with stop_times.txt)')

    # Optional arguments with defaults
    parser.add_argument('--output_folder', default=None, help='Folder for the interpolated stop_times.txt (default: <gtfs_folder>/interpolated)')
    parser.add_argument('--method', type=str, default='uniform', choices=INTERPOLATION_METHODS,
                        help='uniform: even spacing between known times, shape_dist: spacing by shape_dist_traveled')
    parser.add_argument('--engine', type=str, default='frame', choices=['frame', 'records'],
                        help='frame: whole feed at once, records: trip by trip')
    parser.add_argument('--trip_ids', nargs='*', default=None, help='Only process these trips')
    parser.add_argument('--keep_zero', action='store_true', help='Read 00:00:00 as a real time instead of an unknown one')
    parser.add_argument('--strict', action='store_true', help='Exit with status 1 if some times stay unknown')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log every gap that is left unresolved')
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
    )

    zero_is_missing = not args.keep_zero
    output_folder = args.output_folder or os.path.join(args.gtfs_folder, "interpolated")

    try:
        stop_times = StopTimes().load(args.gtfs_folder, trip_ids=args.trip_ids, zero_is_missing=zero_is_missing)
    except FileNotFoundError as e:
        logger.error(f"Failed to read {args.gtfs_folder}: {e}")
        return 1

    n_trips = stop_times.lf.select("trip_id").unique().collect().height
    n_unknown = stop_times.unresolved_count(zero_is_missing=zero_is_missing)
    logger.info(f"Num trips {n_trips}, unknown arrival/departure times {n_unknown}")

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", UserWarning)
        result = stop_times.interpolate(method=args.method, engine=args.engine, zero_is_missing=zero_is_missing)
    for w in caught:
        logger.warning(str(w.message))

    n_left = result.unresolved_count(zero_is_missing=zero_is_missing)
    logger.info(f"Interpolated {n_unknown - n_left} times with method '{args.method}', {n_left} left unknown")

    if args.strict and n_left > 0:
        logger.error(f"{n_left} stop times could not be interpolated (strict mode)")
        return 1

    result.write(output_folder)
    logger.info("Done")
    return 0


if __name__ == "__main__":
    sys.exit(main())
