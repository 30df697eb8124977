"""
Tenant Branding 負載測試腳本 (Locust)
==================================

測試情境：
- 匿名訪客大量讀取 /theme、/theme.css（依 Host 解析租戶，走快取）
- 少量租戶管理者更新主題（觸發快取失效）
- 目標：快取命中下 P95 < 50ms

啟動方式：
    # Web UI 模式
    locust -f tests/load/locustfile.py --host=http://localhost:8000

    # Headless 模式（CI 適用）
    LOAD_TEST_DOMAINS=shop.example.com,hr.example.org \
    LOAD_TEST_OWNER_TOKEN=<jwt> \
    locust -f tests/load/locustfile.py --host=http://localhost:8000 \
           --headless -u 200 -r 20 --run-time 5m \
           --csv=tests/load/results/report
"""

import os
import random

from locust import HttpUser, between, events, tag, task
from locust.runners import MasterRunner

# ---------------------------------------------------------------------------
# 設定
# ---------------------------------------------------------------------------
DOMAINS = [d.strip() for d in os.getenv("LOAD_TEST_DOMAINS", "shop.example.com").split(",") if d.strip()]
UNKNOWN_DOMAINS = ["unknown-%d.example.net" % i for i in range(20)]
OWNER_TOKEN = os.getenv("LOAD_TEST_OWNER_TOKEN", "")


# ---------------------------------------------------------------------------
# 效能基準線定義
# ---------------------------------------------------------------------------
PERFORMANCE_BASELINES = {
    "theme_public":        {"p95": 50,    "p99": 150,   "error_rate": 0.00},
    "theme_css":           {"p95": 50,    "p99": 150,   "error_rate": 0.00},
    "theme_unknown_host":  {"p95": 50,    "p99": 150,   "error_rate": 0.00},
    "theme_owner":         {"p95": 200,   "p99": 500,   "error_rate": 0.01},
    "theme_update":        {"p95": 300,   "p99": 800,   "error_rate": 0.01},
    "health_check":        {"p95": 100,   "p99": 200,   "error_rate": 0.00},
}


# ---------------------------------------------------------------------------
# 匿名訪客（登入頁 / 入口頁載入品牌）
# ---------------------------------------------------------------------------
class Visitor(HttpUser):
    """模擬訪客：依自訂網域載入主題與樣式表"""

    wait_time = between(0.5, 2)
    weight = 9

    @tag("public")
    @task(6)
    def load_theme(self):
        self.client.get(
            "/api/v1/theme",
            headers={"Host": random.choice(DOMAINS)},
            name="theme_public",
        )

    @tag("public")
    @task(3)
    def load_stylesheet(self):
        self.client.get(
            "/api/v1/theme.css",
            headers={"Host": random.choice(DOMAINS)},
            name="theme_css",
        )

    @tag("public")
    @task(1)
    def load_theme_unknown_host(self):
        """未綁定的網域應回傳預設主題（負向快取）"""
        self.client.get(
            "/api/v1/theme",
            headers={"Host": random.choice(UNKNOWN_DOMAINS)},
            name="theme_unknown_host",
        )


# ---------------------------------------------------------------------------
# 租戶管理者
# ---------------------------------------------------------------------------
class TenantOwner(HttpUser):
    """模擬 Owner：查看並偶爾更新主題色"""

    wait_time = between(3, 10)
    weight = 1

    def on_start(self):
        self.headers = {"Authorization": f"Bearer {OWNER_TOKEN}"} if OWNER_TOKEN else {}

    @tag("owner")
    @task(3)
    def read_own_theme(self):
        self.client.get("/api/v1/theme", headers=self.headers, name="theme_owner")

    @tag("owner")
    @task(1)
    def update_colors(self):
        color = "#%06x" % random.randint(0, 0xFFFFFF)
        self.client.put(
            "/api/v1/theme",
            headers=self.headers,
            json={"primaryColor": color},
            name="theme_update",
        )


# ---------------------------------------------------------------------------
# 健康檢查（背景監控）
# ---------------------------------------------------------------------------
class HealthChecker(HttpUser):
    """持續 /health 探活"""

    wait_time = between(5, 15)
    weight = 0  # 不佔比例，手動啟用

    @tag("health")
    @task
    def health_check(self):
        self.client.get("/health", name="health_check")

    @tag("health")
    @task
    def metrics_check(self):
        self.client.get("/metrics", name="metrics_check")


# ---------------------------------------------------------------------------
# 事件 Hook：測試結束時輸出效能基準線比對
# ---------------------------------------------------------------------------
@events.quitting.add_listener
def on_quitting(environment, **kwargs):
    """測試結束時比對效能基準線，並輸出結果"""
    if isinstance(environment.runner, MasterRunner):
        return  # 分散式模式只在 master 處理

    stats = environment.runner.stats
    print("\n" + "=" * 70)
    print("效能基準線比對結果")
    print("=" * 70)

    violations = []

    for name, baseline in PERFORMANCE_BASELINES.items():
        entry = stats.entries.get((name, "GET"), None) or stats.entries.get((name, "PUT"), None)
        if entry is None or entry.num_requests == 0:
            print(f"  {name:24s}  無資料（未觸發）")
            continue

        p95 = entry.get_response_time_percentile(0.95) or 0
        p99 = entry.get_response_time_percentile(0.99) or 0
        error_rate = entry.fail_ratio

        print(
            f"  {name:24s}  "
            f"P95={p95:>6.0f}ms (≤{baseline['p95']}ms)  "
            f"P99={p99:>6.0f}ms (≤{baseline['p99']}ms)  "
            f"Err={error_rate:>5.1%} (≤{baseline['error_rate']:.0%})"
        )

        if p95 > baseline["p95"] or p99 > baseline["p99"] or error_rate > baseline["error_rate"]:
            violations.append(name)

    print("=" * 70)
    if violations:
        print(f"共 {len(violations)} 個端點未達基準線：{', '.join(violations)}")
    else:
        print("所有端點均達到效能基準線")
    print("=" * 70 + "\n")
