"""
Puzzle Craft entry point.
"""
import os
import sys
import traceback

print("[PuzzleCraft] ========================================")
print("[PuzzleCraft] Starting Puzzle Craft")
print("[PuzzleCraft] ========================================")

# Default to production for hosted deployment
config_name = os.getenv('FLASK_ENV', 'production')
print(f"[PuzzleCraft] Config: {config_name}")
print(f"[PuzzleCraft] PORT: {os.getenv('PORT', 'not set')}")
print(f"[PuzzleCraft] DATABASE_URL: {'set' if os.getenv('DATABASE_URL') else 'NOT SET'}")
print(f"[PuzzleCraft] S3 bucket: {os.getenv('AWS_S3_BUCKET_NAME') or 'NOT SET'}")

try:
    from puzzlecraft import create_app
    app = create_app(config_name)
    print(f"[PuzzleCraft] App created, {len(list(app.url_map.iter_rules()))} routes")
except Exception as e:
    print(f"[PuzzleCraft] FATAL ERROR during app creation: {e}")
    traceback.print_exc()
    sys.exit(1)

if __name__ == '__main__':
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=os.getenv('FLASK_ENV') == 'development'
    )
