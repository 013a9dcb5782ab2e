#!/usr/bin/env python3

import argparse
import json
import logging
import sys

from batchgcd.actions import ACTIONS, dispatch_action
from batchgcd.batch_gcd import run_batch_gcd
from batchgcd.errors import BatchGcdError
from batchgcd.moduli_csv import read_moduli_csv
from batchgcd.report import log_summary, write_reports

logger = logging.getLogger(__name__)


def logging_level(string):
    """
    Wandelt einen Level-Namen (DEBUG, INFO, ...) oder eine Zahl in ein Logging-Level um.
    """
    if string.isnumeric():
        return int(string)
    level = getattr(logging, string.upper(), None)
    if not isinstance(level, int):
        raise argparse.ArgumentTypeError(f"invalid log level {string}")
    return level


def positive_int(string):
    try:
        value = int(string)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number {string}")
    if value < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return value


def run_testcases(json_testcase):
    """
    Liest eine JSON-Datei ein, interpretiert die action und die arguments
    und gibt als Ergebnis eine JSON im Einzeilenformat aus.
    """
    try:
        with open(json_testcase, 'r', encoding='utf-8') as file:
            data = json.load(file)
    except FileNotFoundError:
        print(f"File {json_testcase} not found", file=sys.stderr)
        return 1
    except json.decoder.JSONDecodeError as e:
        print(f"Invalid JSON: {e}", file=sys.stderr)
        return 1

    # Überprüfe, ob mehrere testcases vorhanden sind
    testcases = data["testcases"] if "testcases" in data else data
    for uuid, content in testcases.items():
        action = content["action"]
        arguments = content["arguments"]
        response = dispatch_action(action, arguments, ACTIONS)
        print(json.dumps({"id": uuid, "reply": response}))
    return 0


def run_csv(args):
    """
    Batch-GCD über eine Moduli-CSV (<ID>,<Modulus>) mit Berichten im Ausgabeverzeichnis.
    """
    base = 10 if args.base10 else 16
    try:
        ids, moduli = read_moduli_csv(args.input, base)
        result = run_batch_gcd(moduli, workers=args.threads, workdir=args.workdir,
                               keep_levels=args.keep_levels, resolve_dups=args.resolve_duplicates)
    except OSError as e:
        logger.error("Cannot read %s: %s", args.input, e)
        return 1
    except BatchGcdError as e:
        logger.error("Run aborted: %s", e)
        return 1

    log_summary(result)
    write_reports(result, ids, args.outdir)
    return 0


def main(argv=None):
    """
    Programmeinstieg: JSON-Testcases (*.json) oder Moduli-CSV.
    """
    parser = argparse.ArgumentParser(description="Find RSA moduli sharing a prime factor (batch GCD)")
    parser.add_argument('input',
                        help="moduli CSV (<ID>,<modulus>) or JSON testcase file (*.json)")
    parser.add_argument('--base10', action='store_true',
                        help="moduli in the CSV are decimal (default: hexadecimal)")
    parser.add_argument('-t', '--threads', type=positive_int, default=1,
                        help="number of worker threads (default: 1)")
    parser.add_argument('--workdir',
                        help="directory for the product tree levels (default: temporary)")
    parser.add_argument('--resolve-duplicates', action='store_true',
                        help="check moduli marked as duplicate with pairwise GCDs")
    parser.add_argument('--keep-levels', action='store_true',
                        help="do not delete the level files after the run")
    parser.add_argument('-o', '--outdir', default='.',
                        help="directory for compromised.csv and duplicates.csv")
    parser.add_argument('-l', '--level', type=logging_level, default=logging.INFO,
                        help="set logging level")
    args = parser.parse_args(argv)

    logging.basicConfig(format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
                        datefmt='%H:%M:%S', level=args.level, stream=sys.stderr)

    if args.input.endswith(".json"):
        return run_testcases(args.input)
    return run_csv(args)


if __name__ == '__main__':
    sys.exit(main())
