"""Field extraction for the upstream "• Key: Value" report text."""

import re
from typing import Dict, List, Optional

IDENTITY_SECTIONS = {
    "basicData": {
        "name": r"• Nome: (.+)",
        "cpf": r"• CPF: (\d+)",
        "cns": r"• CNS: (\d+)",
        "birthDate": r"• Data de Nascimento: (.+)",
        "sex": r"• Sexo: (.+)",
        "motherName": r"• Nome da Mãe: (.+)",
        "fatherName": r"• Nome do Pai: (.+)",
        "registrationStatus": r"• Situação Cadastral: (.+)",
        "statusDate": r"• Data da Situação: (.+)",
    },
    "economicData": {
        "income": r"• Renda: (.+)",
        "purchasingPower": r"• Poder Aquisitivo: (.+)",
        "incomeRange": r"• Faixa de Renda: (.+)",
        "scoreCSBA": r"• Score CSBA: (.+)",
    },
    "importantInfo": {
        "cpfValid": r"• CPF Válido: (.+)",
        "death": r"• Óbito: (.+)",
        "pep": r"• PEP: (.+)",
    },
}

ADDRESS_MARKER = "🏠 ENDEREÇO"
ADDRESS_FIELDS = {
    "street": r"• Logradouro:\s*(.+)",
    "neighborhood": r"• Bairro:\s*(.+)",
    "cityUF": r"• Cidade/UF:\s*(.+)",
    "cep": r"• CEP:\s*(.+)",
}

NAME_MARKER = "👤 RESULTADO"
NAME_FIELDS = {
    "cpf": r"• CPF: (\d+)",
    "name": r"• Nome: (.+)",
    "birthDate": r"• Data de Nascimento: (.+)",
    "motherName": r"• Nome da Mãe: (.+)",
    "registrationStatus": r"• Situação Cadastral: (.+)",
    "street": r"• Logradouro: (.+)",
    "neighborhood": r"• Bairro: (.+)",
    "cep": r"• CEP: (\d+)",
}

PHONE_MARKER = "👤 PESSOA"
PHONE_FIELDS = {
    "cpfCnpj": r"• CPF/CNPJ: (.+)",
    "name": r"• Nome: (.+)",
    "birthDate": r"• Data de Nascimento: (.+)",
    "neighborhood": r"• Bairro: (.+)",
    "cityUF": r"• Cidade/UF: (.+)",
    "cep": r"• CEP: (\d+)",
}


def _extract(text: str, fields: Dict[str, str]) -> Dict[str, str]:
    found = {}
    for key, pattern in fields.items():
        match = re.search(pattern, text)
        if match:
            found[key] = match.group(1).strip()
    return found


def _blocks(text: str, marker: str) -> List[str]:
    return text.split(marker)[1:]


def parse_identity(text: Optional[str]) -> Optional[Dict]:
    if not text or not text.strip():
        return None

    data = {section: _extract(text, fields) for section, fields in IDENTITY_SECTIONS.items()}
    data["addresses"] = [
        address for address in (_extract(block, ADDRESS_FIELDS) for block in _blocks(text, ADDRESS_MARKER))
        if address
    ]
    return data


def parse_people(text: Optional[str], marker: str, fields: Dict[str, str]) -> List[Dict]:
    if not text or not text.strip():
        return []
    return [_extract(block, fields) for block in _blocks(text, marker)]


def parse_full_name(text: Optional[str]) -> Dict:
    results = parse_people(text, NAME_MARKER, NAME_FIELDS)
    return {"totalResults": len(results), "results": results}


def parse_phone_number(text: Optional[str]) -> Dict:
    results = parse_people(text, PHONE_MARKER, PHONE_FIELDS)
    return {"totalResults": len(results), "results": results}
