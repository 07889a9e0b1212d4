from __future__ import annotations
import os
from travelhub import create_app
from travelhub.extensions import db

def main() -> None:
    flask_app = create_app()

    if os.environ.get("AUTO_CREATE_TABLES", "1") in {"1", "true", "True"}:
        with flask_app.app_context():
            db.create_all()

    # show what routes are actually mounted
    print("\n=== TravelHub API routes ===")
    for r in sorted(flask_app.url_map.iter_rules(), key=lambda x: x.rule):
        methods = ",".join(sorted(m for m in r.methods if m not in {"HEAD", "OPTIONS"}))
        print(f"{methods:<18} {r.rule}")
    print("============================\n")

    debug_enabled = os.environ.get("FLASK_DEBUG", "0") in {"1", "true", "True"}
    flask_app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)), debug=debug_enabled)

if __name__ == "__main__":
    main()
