import socket
import threading
import time
import uuid
from contextlib import closing

import pytest

webdriver = pytest.importorskip("selenium.webdriver")
from selenium.webdriver.chrome.options import Options as ChromeOptions  # noqa: E402
from selenium.webdriver.common.by import By  # noqa: E402

# Utilities to start/stop a uvicorn server for the app during tests

def get_free_port():
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def run_uvicorn(app_import: str, host: str, port: int):
    import uvicorn
    uvicorn.run(app_import, host=host, port=port, log_level="warning")


@pytest.fixture(scope="session")
def live_server():
    host = "127.0.0.1"
    port = get_free_port()
    thread = threading.Thread(target=run_uvicorn, args=("blockauth.main:app", host, port), daemon=True)
    thread.start()

    # wait for server to be up
    url = f"http://{host}:{port}/health"
    import requests
    for _ in range(50):
        try:
            r = requests.get(url, timeout=0.2)
            if r.status_code == 200:
                break
        except requests.RequestException:
            time.sleep(0.1)
    else:
        pytest.skip("Server failed to start for Selenium tests")

    yield f"http://{host}:{port}"


@pytest.fixture(scope="session")
def browser():
    # Use Selenium Manager for automatic driver management; headless mode for CI
    options = ChromeOptions()
    options.add_argument("--headless=new")
    options.add_argument("--no-sandbox")
    options.add_argument("--disable-dev-shm-usage")

    try:
        driver = webdriver.Chrome(options=options)
    except Exception as e:
        pytest.skip(f"Chrome not available for Selenium tests: {e}")
    yield driver
    driver.quit()


@pytest.fixture
def registered_product(live_server):
    import requests
    suffix = uuid.uuid4().hex[:8]
    email = f"maker-{suffix}@example.com"
    requests.post(f"{live_server}/api/users/register",
                  json={"name": "S-Maker", "email": email, "password": "secret123", "role": "manufacturer"})
    token = requests.post(f"{live_server}/api/users/login", json={"email": email, "password": "secret123"}).json()["token"]
    r = requests.post(f"{live_server}/api/products/register",
                      json={"name": "S-Watch", "serialNumber": f"SN-{suffix}"},
                      headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 201
    return r.json()


def test_verify_page_shows_product(browser, live_server, registered_product):
    browser.get(f"{live_server}/verify/{registered_product['id']}")
    assert browser.find_element(By.ID, "product-name").text == "S-Watch"
    assert browser.find_element(By.ID, "manufacturer").text == "S-Maker"
    assert "No sales recorded" in browser.page_source


def test_verify_page_unknown_product(browser, live_server):
    browser.get(f"{live_server}/verify/unknown")
    assert "counterfeit" in browser.page_source
