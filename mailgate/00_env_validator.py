"""
Mailgate - Environment Validator
Prüft beim Start ob die Umgebungsvariablen gesetzt und plausibel sind
"""

import os
import sys


class EnvironmentValidator:
    """Validiert Umgebungsvariablen, streng nur in Produktion"""

    CRITICAL_VARS = {
        "FLASK_SECRET_KEY": {
            "description": "Flask Session-Signatur (PRODUKTION erforderlich!)",
            "hint": 'Generiere mit: python -c "import secrets; print(secrets.token_hex(32))"',
        },
        "MAIL_ENCRYPTION_KEY": {
            "description": "Schlüssel für gespeicherte Mail-Passwörter (alternativ ARGON2_SECRET)",
            "hint": "Einmal setzen und nie ändern, sonst sind gespeicherte Passwörter unlesbar",
            "fallback": "ARGON2_SECRET",
        },
    }

    NUMERIC_VARS = {
        "MAIL_CONNECT_TIMEOUT": "Connect-Timeout in Sekunden (z.B. 15)",
        "MAIL_AUTH_TIMEOUT": "Login-Timeout in Sekunden (z.B. 15)",
    }

    @staticmethod
    def is_production():
        return os.getenv("FLASK_ENV", "development").lower() == "production"

    @staticmethod
    def validate(exit_on_error=True):
        """Hauptvalidierungs-Methode

        Returns:
            True wenn keine Fehler, sonst False (bzw. sys.exit(1) bei exit_on_error)
        """
        errors = []
        warnings = []

        missing = EnvironmentValidator._check_critical_vars()
        if EnvironmentValidator.is_production():
            errors.extend(missing)
        else:
            warnings.extend(f"{m['var']} nicht gesetzt, Entwicklungs-Default aktiv" for m in missing)

        errors.extend(EnvironmentValidator._check_numeric_vars())

        if errors:
            EnvironmentValidator._print_errors(errors, warnings)
            if exit_on_error:
                sys.exit(1)
            return False

        if warnings:
            EnvironmentValidator._print_warnings(warnings)

        print("✅ Alle erforderlichen Umgebungsvariablen sind gesetzt\n")
        return True

    @staticmethod
    def _check_critical_vars():
        """Prüft kritische Variablen (leer oder Platzhalter 'your-...' zählt als fehlend)"""
        errors = []

        for var, info in EnvironmentValidator.CRITICAL_VARS.items():
            value = os.getenv(var) or os.getenv(info.get("fallback", ""), "")
            if not value or value.startswith("your-"):
                errors.append(
                    {
                        "var": var,
                        "description": info["description"],
                        "hint": info["hint"],
                        "severity": "CRITICAL",
                    }
                )

        return errors

    @staticmethod
    def _check_numeric_vars():
        errors = []

        for var, description in EnvironmentValidator.NUMERIC_VARS.items():
            value = os.getenv(var)
            if value is None:
                continue
            try:
                valid = float(value) > 0
            except ValueError:
                valid = False
            if not valid:
                errors.append(
                    {
                        "var": var,
                        "description": description,
                        "hint": f"{var} muss eine positive Zahl sein (aktuell: {value!r})",
                        "severity": "CRITICAL",
                    }
                )

        return errors

    @staticmethod
    def _print_errors(errors, warnings):
        """Gibt Fehler formatiert aus"""
        print("\n" + "=" * 70)
        print("🚨 FEHLER: Kritische Umgebungsvariablen fehlen oder sind ungültig")
        print("=" * 70 + "\n")

        for i, error in enumerate(errors, 1):
            print(f"{i}. ❌ {error['var']}")
            print(f"   Beschreibung: {error['description']}")
            print(f"   💡 Hinweis: {error['hint']}")
            print()

        print("=" * 70)
        print("📋 Lösung: .env.example nach .env kopieren und setzen:\n")
        for error in errors:
            print(f"   {error['var']}=<wert>")
        print()

        if warnings:
            EnvironmentValidator._print_warnings(warnings)

    @staticmethod
    def _print_warnings(warnings):
        """Gibt Warnungen aus"""
        print("\n⚠️  WARNUNGEN:\n")
        for warning in warnings:
            print(f"  ⚠️  {warning}")
        print()


def validate_environment(exit_on_error=True):
    """Entry-Point für Environment Validation"""
    return EnvironmentValidator.validate(exit_on_error=exit_on_error)


if __name__ == "__main__":
    validate_environment()
