"""The Command Line Interface for the key manager.

Generates key pairs to stdout, signs messages and verifies signatures. Messages are hashed with the selected SHA
algorithm and the digest is what gets signed.

Typical usage example:

    rsakeys keygen --keysize 3072
    OR
    python -m rsakeys sign -P key.pem --message "Hi there!"
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import argparse
import base64
import binascii
import hashlib
import pathlib
import sys
import typing

import rsakeys


class HelpData(typing.NamedTuple):
    description: str
    format: typing.Type = str
    choices: list[str] | None = None
    default: typing.Any = None


help_dict: dict[str, HelpData] = {
    "keygen":
        HelpData("Key pair generation utility. Prints the private then the public key."),
    "sign":
        HelpData("Signing utility."),
    "verify":
        HelpData("Signature verification utility."),
    "public_key":
        HelpData(
            description="Location of the public key file.",
            format=pathlib.Path,
        ),
    "private_key":
        HelpData(
            description="Location of the private key file.",
            format=pathlib.Path,
        ),
    "message":
        HelpData(
            description="Message or path to file containing payload. If Path start with `P:`",
            format=str,
        ),
    "keysize":
        HelpData(
            description="Key size (in bits).",
            choices=["2048", "3072", "4096"],
            default="3072",
        ),
    "pub_exponent":
        HelpData(
            description="Exponent for the public key.",
            format=int,
            default=rsakeys.keygen.DEFAULT_EXPONENT,
        ),
    "sha":
        HelpData(description="Specific SHA algorithm to use",
                 choices=[hsh.value for hsh in rsakeys.HashType],
                 default=rsakeys.HashType.SHA256.value),
    "signature":
        HelpData(
            description="The base64 signature to validate against the payload and public key.",
            format=str,
        ),
}

pubkey = argparse.ArgumentParser(add_help=False)
pubkey.add_argument("--public_key",
                    "-p",
                    required=True,
                    type=help_dict["public_key"].format,
                    help=help_dict["public_key"].description)
privkey = argparse.ArgumentParser(add_help=False)
privkey.add_argument("--private_key",
                     "-P",
                     required=True,
                     type=help_dict["private_key"].format,
                     help=help_dict["private_key"].description)
payloads = argparse.ArgumentParser(add_help=False)
payloads.add_argument("--message",
                      "-m",
                      required=True,
                      type=help_dict["message"].format,
                      help=help_dict["message"].description)
sha = argparse.ArgumentParser(add_help=False)
sha.add_argument("--sha",
                 "-s",
                 choices=help_dict["sha"].choices,
                 default=help_dict["sha"].default,
                 help=help_dict["sha"].description)
corep = argparse.ArgumentParser(prog="rsakeys")
corep.add_argument("--version", "-v", action="version", version=f"%(prog)s {rsakeys.__version__}")
commands = corep.add_subparsers(dest="subcommand", title="Subcommands", required=True)

keygen = commands.add_parser("keygen", help=help_dict["keygen"].description)
keygen.add_argument("--keysize",
                    choices=help_dict["keysize"].choices,
                    default=help_dict["keysize"].default,
                    help=help_dict["keysize"].description)
keygen.add_argument("--pub-exponent",
                    type=help_dict["pub_exponent"].format,
                    default=help_dict["pub_exponent"].default,
                    help=help_dict["pub_exponent"].description)

sign = commands.add_parser("sign", parents=[privkey, payloads, sha], help=help_dict["sign"].description)
verify = commands.add_parser("verify", parents=[pubkey, payloads, sha], help=help_dict["verify"].description)
verify.add_argument("--signature",
                    "-S",
                    required=True,
                    type=help_dict["signature"].format,
                    help=help_dict["signature"].description)


def check_message(mess: str, enc: str = "utf-8") -> str:
    """Parse message for path-notice."""
    if mess.startswith("P:"):
        mess = mess[2:]
        with open(mess, "r", encoding=enc) as f:
            mess = f.read()
    return mess


def read_key_file(file: pathlib.Path) -> bytes:
    """Reads a PEM key file and null terminates it for import."""
    with open(file, "rb") as f:
        return rsakeys.rsa.terminate_pem(f.read())


def digest_message(message: str, hashf: str) -> bytes:
    """Hashes the message with the named SHA algorithm."""
    return hashlib.new(hashf, message.encode("utf-8")).digest()


def pem_text(pem: bytes) -> str:
    """Strips the null terminator off an exported PEM for printing."""
    return pem.rstrip(rsakeys.rsa.NULL_TERMINATOR).decode("ascii")


def main(argv: list[str] | None = None) -> int:
    """Command line entry point. Returns the process exit status."""
    args = corep.parse_args(argv)
    try:
        match args.subcommand:
            case "keygen":
                with rsakeys.RSAKey() as rpk, rsakeys.RSAKey() as rpu:
                    rsakeys.generate_key_pair(int(args.keysize), args.pub_exponent, rpk, rpu)
                    print(pem_text(rpk.private_pem()), end="")
                    print(pem_text(rpu.public_pem()), end="")
            case "sign":
                digest = digest_message(check_message(args.message), args.sha)
                with rsakeys.RSAKey.from_private_pem(read_key_file(args.private_key)) as rpk:
                    signature = rpk.sign_digest(args.sha, digest)
                print(base64.b64encode(signature).decode("ascii"))
            case "verify":
                digest = digest_message(check_message(args.message), args.sha)
                try:
                    signature = base64.b64decode(args.signature, validate=True)
                except binascii.Error:
                    print("Signature is not valid base64!", file=sys.stderr)
                    return 2
                with rsakeys.RSAKey.from_public_pem(read_key_file(args.public_key)) as rpu:
                    rpu.verify(args.sha, digest, signature)
                print("Signature Verified!")
    except rsakeys.CryptoFailureError as exc:
        print(f"{args.subcommand.capitalize()} Failed! {exc}", file=sys.stderr)
        return 1
    except rsakeys.RSAKeyError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except OSError as exc:
        print(f"Could not read file: {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
