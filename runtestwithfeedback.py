import json
import sys

from batchgcd.actions import ACTIONS, dispatch_action


def compare_results(actual: dict, expected: dict) -> bool:
    return actual == expected


def evaluate(data: dict, action_lut=ACTIONS, out=sys.stdout) -> dict:
    """
    Führt alle Testcases aus, gibt die Antworten zeilenweise aus und vergleicht
    sofort mit expectedResults (falls vorhanden).
    """
    total = 0
    correct = 0
    incorrect = 0
    mismatches = []
    missing_expected = []
    missing_action = []

    def process_one(uuid, content, expected_results):
        nonlocal total, correct, incorrect
        total += 1

        action = content.get("action")
        arguments = content.get("arguments", {})

        # Unbekannte Action
        if action not in action_lut:
            missing_action.append(uuid)
            incorrect += 1
            print(json.dumps({"id": uuid, "reply": {"error": "Unknown action"}}), file=out)
            return

        response = dispatch_action(action, arguments, action_lut)
        print(json.dumps({"id": uuid, "reply": response}), file=out)

        if expected_results is not None:
            exp = expected_results.get(uuid)
            if exp is None:
                missing_expected.append(uuid)
                incorrect += 1
            elif compare_results(response, exp):
                correct += 1
            else:
                incorrect += 1
                mismatches.append({
                    "id": uuid,
                    "action": action,
                    "expected": exp,
                    "actual": response
                })

    if "testcases" in data:
        expected_results = data.get("expectedResults", None)
        for uuid, content in data["testcases"].items():
            process_one(uuid, content, expected_results)
    else:
        for uuid, content in data.items():
            process_one(uuid, content, None)

    return {
        "total": total,
        "correct": correct,
        "incorrect": incorrect,
        "mismatches": mismatches,
        "missing_expected": missing_expected,
        "missing_action": missing_action,
    }


def main():
    if len(sys.argv) != 2:
        print(f"Syntax: python3 {sys.argv[0]} <json_filename>", file=sys.stderr)
        sys.exit(1)
    json_testcase = sys.argv[1]

    try:
        with open(json_testcase, 'r', encoding='utf-8') as file:
            data = json.load(file)
    except FileNotFoundError:
        print(f"File {json_testcase} not found", file=sys.stderr)
        sys.exit(1)
    except json.decoder.JSONDecodeError as e:
        print(f"Invalid JSON: {e}", file=sys.stderr)
        sys.exit(1)

    summary = evaluate(data)

    if "expectedResults" in data:
        total = summary["total"]
        print(f"korrekt: {summary['correct']}/{total}, inkorrekt: {summary['incorrect']}/{total}", file=sys.stderr)
        if summary["missing_expected"]:
            print(f"Fehlende expectedResults für Cases: {len(summary['missing_expected'])}", file=sys.stderr)
        if summary["missing_action"]:
            print(f"Unbekannte Actions in Cases: {len(summary['missing_action'])}", file=sys.stderr)
        if summary["mismatches"]:
            ids = [m["id"] for m in summary["mismatches"]]
            print("Fehlgeschlagene Testcases (IDs): " + ", ".join(ids), file=sys.stderr)
    sys.exit(1 if summary["incorrect"] else 0)


if __name__ == '__main__':
    main()
