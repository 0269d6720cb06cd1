import sys

from festvote.auth.jwt import mint_operator_access


if __name__ == "__main__":
    operator = sys.argv[1] if len(sys.argv) > 1 else "operator"
    print(mint_operator_access(operator))
