#!/usr/bin/env python3
"""
Terminal client for the DocuNest API.
"""
import os
import sys
from typing import Optional
from urllib.parse import unquote
import requests


class VaultClient:
    def __init__(self, base_url: str = "http://localhost:8000"):
        self.base_url = base_url
        self.token: Optional[str] = None
        self.name: Optional[str] = None

    @property
    def headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def clear_screen(self):
        os.system('clear' if os.name == 'posix' else 'cls')

    def print_header(self):
        print("=" * 60)
        print(" DocuNest Vault Client".center(60))
        print("=" * 60)
        if self.name:
            print(f" Logged in as: {self.name}".center(60))
            print("=" * 60)

    @staticmethod
    def _error(response: requests.Response) -> str:
        try:
            return str(response.json().get('detail', 'Unknown error'))
        except ValueError:
            return response.text or 'Unknown error'

    def register(self, name: str, email: str, password: str) -> bool:
        try:
            response = requests.post(
                f"{self.base_url}/api/auth/register",
                json={"name": name, "email": email, "password": password}
            )
            if response.status_code == 201:
                data = response.json()
                self.token = data["token"]
                self.name = data["user"]["name"]
                print(f"✓ User '{name}' registered successfully!")
                return True
            print(f"✗ Registration failed: {self._error(response)}")
            return False
        except requests.RequestException as e:
            print(f"✗ Error: {e}")
            return False

    def login(self, email: str, password: str) -> bool:
        try:
            response = requests.post(
                f"{self.base_url}/api/auth/login",
                json={"email": email, "password": password}
            )
            if response.status_code == 200:
                data = response.json()
                self.token = data["token"]
                self.name = data["user"]["name"]
                print(f"✓ Logged in as '{self.name}'")
                return True
            print(f"✗ Login failed: {self._error(response)}")
            return False
        except requests.RequestException as e:
            print(f"✗ Error: {e}")
            return False

    def set_pin(self, pin: str):
        response = requests.post(
            f"{self.base_url}/api/auth/set-pin", json={"pin": pin}, headers=self.headers
        )
        if response.status_code == 200:
            print("✓ PIN set successfully")
        else:
            print(f"✗ Failed to set PIN: {self._error(response)}")

    def list_documents(self):
        response = requests.get(f"{self.base_url}/api/files", headers=self.headers)
        if response.status_code != 200:
            print(f"✗ Failed to list files: {self._error(response)}")
            return

        documents = response.json()["documents"]
        print(f"\n--- {len(documents)} document(s) ---")
        for doc in documents:
            lock = "🔒" if doc["requires_pin"] else "  "
            tags = ", ".join(doc["tags"])
            print(f"{lock} [{doc['id']:>4}] {doc['filename']:<40} {doc['category']:<12} {tags}")
        print("-" * 60)

    def upload(self, path: str, category: str, tags: str, pin: str):
        if not os.path.isfile(path):
            print(f"✗ No such file: {path}")
            return

        form = {"category": category or "Other", "tags": tags}
        if pin:
            form["pin"] = pin
            form["requires_pin"] = "true"

        with open(path, "rb") as f:
            response = requests.post(
                f"{self.base_url}/api/files/upload",
                files={"file": (os.path.basename(path), f)},
                data=form,
                headers=self.headers,
            )
        if response.status_code == 201:
            doc = response.json()
            print(f"✓ Uploaded '{doc['filename']}' as document {doc['id']}")
        else:
            print(f"✗ Upload failed: {self._error(response)}")

    def download(self, document_id: str, pin: str, target_dir: str = "."):
        params = {"pin": pin} if pin else {}
        response = requests.get(
            f"{self.base_url}/api/files/{document_id}/download",
            params=params,
            headers=self.headers,
        )
        if response.status_code != 200:
            print(f"✗ Download failed: {self._error(response)}")
            return

        disposition = response.headers.get("Content-Disposition", "")
        _, _, encoded = disposition.partition("filename*=UTF-8''")
        if encoded:
            filename = unquote(encoded.split(";")[0])
        else:
            filename = disposition.partition('filename="')[2].split('"')[0]
        target = os.path.join(target_dir, os.path.basename(filename) or f"document-{document_id}")
        with open(target, "wb") as f:
            f.write(response.content)
        print(f"✓ Saved {len(response.content)} bytes to {target}")

    def delete(self, document_id: str):
        response = requests.delete(f"{self.base_url}/api/files/{document_id}", headers=self.headers)
        if response.status_code == 200:
            print("✓ File deleted")
        else:
            print(f"✗ Delete failed: {self._error(response)}")

    def menu(self):
        while True:
            print("\n1. List files")
            print("2. Upload file")
            print("3. Download file")
            print("4. Delete file")
            print("5. Set account PIN")
            print("6. Exit")

            choice = input("\nChoose an option: ").strip()

            if choice == "1":
                self.list_documents()
            elif choice == "2":
                path = input("Path: ").strip()
                category = input("Category [Other]: ").strip()
                tags = input("Tags (comma-separated): ").strip()
                pin = input("Per-file PIN (blank for none): ").strip()
                self.upload(path, category, tags, pin)
            elif choice == "3":
                document_id = input("Document id: ").strip()
                pin = input("PIN (blank if not protected): ").strip()
                self.download(document_id, pin)
            elif choice == "4":
                self.delete(input("Document id: ").strip())
            elif choice == "5":
                self.set_pin(input("New 4-6 digit PIN: ").strip())
            elif choice == "6":
                print("Goodbye!")
                return

    def run(self):
        """Main entry point."""
        self.clear_screen()
        self.print_header()

        print("\n1. Login")
        print("2. Register")
        print("3. Exit")

        choice = input("\nChoose an option: ").strip()

        if choice == "3":
            print("Goodbye!")
            return

        email = input("Email: ").strip()
        password = input("Password: ").strip()

        if choice == "2":
            name = input("Name: ").strip()
            ok = self.register(name, email, password)
        else:
            ok = self.login(email, password)

        if not ok:
            input("\nPress Enter to exit...")
            return

        try:
            self.menu()
        except KeyboardInterrupt:
            print("\n\nGoodbye!")


if __name__ == "__main__":
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"
    VaultClient(base_url).run()
