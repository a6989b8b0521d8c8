import os
import sys
import base64
import requests

# Usage: python scripts/issue_qr.py <PACKAGE_ID>
# Logs in as EMAIL/PASSWORD, issues a delivery QR and writes it to OUT (default qr.png).

BASE_URL = os.environ.get('BASE_URL', 'http://localhost:8000')
EMAIL = os.environ.get('EMAIL', 'conserje@condotrack.local')
PASSWORD = os.environ.get('PASSWORD', 'condotrack')

if len(sys.argv) < 2:
    print('Usage: issue_qr.py <PACKAGE_ID>')
    sys.exit(1)
package_id = sys.argv[1].strip()

s = requests.Session()
r = s.post(f"{BASE_URL}/api/auth/login", json={'email': EMAIL, 'password': PASSWORD}, timeout=30)
if r.status_code != 200:
    print('Login failed:', r.status_code, r.text)
    sys.exit(1)

out = os.environ.get('OUT', 'qr.png')

# If WANT_SVG=1, request the vector rendering
if os.environ.get('WANT_SVG', '0') == '1':
    r = s.post(f"{BASE_URL}/api/qr/generate", params={'format': 'svg'}, json={'package_id': package_id}, timeout=30)
    if r.status_code != 200:
        print('Error:', r.status_code, r.text)
        sys.exit(1)
    out = os.environ.get('OUT', 'qr.svg')
    with open(out, 'w') as f:
        f.write(r.text)
    print('SVG saved to', out)
    sys.exit(0)

# Default: JSON mode
r = s.post(f"{BASE_URL}/api/qr/generate", json={'package_id': package_id}, timeout=30)
if r.status_code != 200:
    print('Error:', r.status_code, r.text)
    sys.exit(1)
res = r.json()
print('redeem_url:', res['redeem_url'])
print('expires_at:', res['expires_at'])
with open(out, 'wb') as f:
    f.write(base64.b64decode(res['qr_data_url'].split(',', 1)[1]))
print('PNG saved to', out)
