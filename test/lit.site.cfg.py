import os
import shutil

# Get the test directory and project directory dynamically
script_dir = os.path.dirname(os.path.abspath(__file__))
project_dir = os.path.dirname(script_dir)

config.txscope_dir = project_dir

# Find txscope dynamically
if shutil.which('txscope'):
    config.txscope = shutil.which('txscope')
elif os.path.exists(os.path.join(project_dir, 'venv', 'bin', 'txscope')):
    config.txscope = os.path.join(project_dir, 'venv', 'bin', 'txscope')
else:
    config.txscope = None

config.rpc_url = os.environ.get('RPC_URL', "http://localhost:8545")
config.enable_rpc_tests = bool(os.environ.get('TXSCOPE_RPC_TESTS'))
config.test_transactions = {
    "test_tx": "0x37946602f5b59ebb3d970d6efd7cc22b1dc2d1ad9e742604e5abe6d6a1f4f2e6",
}

# Load the main config
lit_config.load_config(config, os.path.join(script_dir, "lit.cfg.py"))
