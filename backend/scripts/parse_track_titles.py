#!/usr/bin/env python3
"""
Parse Track Titles

Runs the classical metadata parser over track titles and prints the fields
it extracts. Nothing is read from or written to the database or Spotify.

Input lines in --file are "title<TAB>artist1;artist2" (the artist part is
optional). Titles given on the command line share the --artist credits.
"""

import json
from pathlib import Path

from script_base import ScriptBase, run_script

from metadata_parser import parse_batch_track_metadata


def read_entries(path: Path):
    """Read {trackName, artistNames} entries from a tab-separated file"""
    entries = []
    with open(path, encoding='utf-8') as f:
        for line in f:
            line = line.rstrip('\n')
            if not line.strip() or line.lstrip().startswith('#'):
                continue
            title, _, artists = line.partition('\t')
            entries.append({
                'trackName': title.strip(),
                'artistNames': [a.strip() for a in artists.split(';') if a.strip()],
            })
    return entries


def main() -> bool:
    script = ScriptBase(
        name="parse_track_titles",
        description="Parse classical track titles into composer/work/movement fields",
        epilog="""
Examples:
  python parse_track_titles.py "Symphony No. 5 in C Minor, Op. 67: I. Allegro con brio" --artist "Ludwig van Beethoven"
  python parse_track_titles.py --file titles.tsv --composer "Franz Schubert" --json
        """,
        log_to_file=False
    )
    script.parser.add_argument('titles', nargs='*', help='Track titles to parse')
    script.parser.add_argument('--file', type=Path, help='File of title<TAB>artist1;artist2 lines')
    script.parser.add_argument('--artist', action='append', default=[],
                               help='Credited artist for command-line titles (repeatable)')
    script.parser.add_argument('--composer', action='append', default=[],
                               help='Known composer name used for matching credits (repeatable)')
    script.parser.add_argument('--json', action='store_true', help='Print results as JSON lines')
    script.add_debug_arg()
    args = script.parse_args()

    entries = [{'trackName': title, 'artistNames': list(args.artist)} for title in args.titles]
    if args.file:
        entries.extend(read_entries(args.file))

    if not entries:
        script.logger.error("No titles given (pass titles or --file)")
        return False

    if not args.json:
        script.print_header()

    results = parse_batch_track_metadata(entries, args.composer or None)

    stats = {'titles': len(entries), 'parsed': 0, 'unparsed': 0, 'with_movement': 0}
    for entry, result in zip(entries, results):
        if result is None:
            stats['unparsed'] += 1
        else:
            stats['parsed'] += 1
            if result.movement:
                stats['with_movement'] += 1

        if args.json:
            print(json.dumps({
                'trackName': entry['trackName'],
                'parsed': result.to_dict() if result else None,
            }, ensure_ascii=False))
            continue

        script.logger.info(entry['trackName'])
        if result is None:
            script.logger.info("  (no catalog number or form found)")
            continue
        for field, value in result.to_dict().items():
            if value is not None:
                script.logger.info(f"  {field}: {value}")

    if not args.json:
        script.print_summary(stats)

    return True


if __name__ == "__main__":
    run_script(main)
