"""
Smoke-test script for the Vault Role Generator API.
Run the API server first: python -m vault_roles.api.app
Then run this: python test_api.py [VAULT_DB_CONFIG_NAME]
"""

import json
import sys

import requests

BASE_URL = "http://localhost:8000"


def show(title, response):
    print("\n" + "=" * 50)
    print(f"TEST: {title}")
    print("=" * 50)
    print(f"Status Code: {response.status_code}")
    print(f"Response: {json.dumps(response.json(), indent=2)}")


def check_health():
    response = requests.get(f"{BASE_URL}/health")
    show("Health Check", response)
    return response.status_code == 200


def check_connection(connection):
    response = requests.post(f"{BASE_URL}/api/connection/test", json={"connection": connection})
    show("Connection Test", response)
    return response.status_code == 200 and response.json().get("success")


def load_databases(connection):
    response = requests.post(f"{BASE_URL}/api/databases", json={"connection": connection})
    show("Load Databases", response)
    if response.status_code != 200:
        return []
    return response.json()["selections"]


def generate(connection, selections):
    response = requests.post(
        f"{BASE_URL}/api/sql/generate",
        json={"connection": connection, "selections": selections},
    )
    show("Generate SQL", response)
    return response.status_code == 200


def generate_without_selection(connection):
    response = requests.post(
        f"{BASE_URL}/api/sql/generate",
        json={"connection": connection, "selections": []},
    )
    show("Generate SQL Without Selection", response)
    return response.status_code == 400


def main():
    config_name = sys.argv[1] if len(sys.argv) > 1 else "DCIR-DEVDB"
    connection = {
        "vault_db_config_name": config_name,
        "role_name": "smoke_test_role",
        "app_name": "smoke_test_app",
    }

    results = {
        "health": check_health(),
        "connection": check_connection(connection),
        "no_selection": generate_without_selection(connection),
    }

    selections = load_databases(connection)
    results["databases"] = bool(selections)
    if selections:
        selections[0]["is_selected"] = True
        selections[0]["permission"] = "ReadOnly"
        results["generate"] = generate(connection, selections)

    print("\n" + "=" * 50)
    print("SUMMARY")
    print("=" * 50)
    for name, ok in results.items():
        print(f"  {'✓' if ok else '✗'} {name}")
    print("\nThe build step is not exercised here; it writes to Vault.")


if __name__ == "__main__":
    main()
