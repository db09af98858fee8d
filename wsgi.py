# wsgi.py
import os
import sys
from pathlib import Path

# 將專案根目錄放進 sys.path，gunicorn 從其他目錄啟動時也能匯入 server / xiaop
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from server import app  # noqa: E402

# 本地執行（非 gunicorn）時使用
if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    app.run(host="0.0.0.0", port=port, debug=False)
