from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class PrintStart(BaseModel):
    print_id: str = Field(..., min_length=1)
    gramasi: Optional[str] = None
    lebar_kertas: Optional[str] = None
    lebar_file: Optional[str] = None
    rip: Optional[str] = None
    dimensi_file: Optional[str] = None
    prints_mesin: Optional[str] = None
    prints_icc: Optional[str] = None
    prints_target: Optional[str] = None
    prints_qty: Optional[str] = None
    waktu_rip: Optional[str] = None
    paper_stock_id: Optional[int] = None
    tgl_print: Optional[datetime] = None


class PrintDone(BaseModel):
    prints_bagus: str = Field(..., min_length=1)
    prints_reject: str = Field(..., min_length=1)
    prints_waste: str = "0"
    catatan_print: str = ""
    paper_stock_id: Optional[int] = None
    print_done: Optional[datetime] = None


def _speed(v):
    if v is None or v == "":
        return None
    if isinstance(v, str):
        try:
            return float(v.strip())
        except ValueError:
            raise ValueError("press_speed must be a number")
    return v


class PressStart(BaseModel):
    press_mesin: str = Field(..., min_length=1)
    press_presure: str = Field(..., min_length=1)
    press_suhu: str = Field(..., min_length=1)
    press_speed: Optional[float] = None
    press_protect: Optional[str] = None
    total_kain: Optional[str] = None
    press_id: Optional[str] = None
    tgl_press: Optional[datetime] = None

    parse_press_speed = field_validator("press_speed", mode="before")(_speed)


class PressDone(BaseModel):
    press_bagus: str = Field(..., min_length=1)
    press_reject: Optional[str] = None
    press_waste: Optional[str] = None
    catatan_press: Optional[str] = None
    press_mesin: Optional[str] = None
    press_presure: Optional[str] = None
    press_suhu: Optional[str] = None
    press_speed: Optional[float] = None
    press_protect: Optional[str] = None
    total_kain: Optional[str] = None
    press_done: Optional[datetime] = None

    parse_press_speed = field_validator("press_speed", mode="before")(_speed)


class DtfStart(BaseModel):
    dtf_id: Optional[str] = None
    tgl_dtf: Optional[datetime] = None


class DtfComplete(BaseModel):
    quantity_completed: Decimal = Field(..., gt=0)
    notes: Optional[str] = None
    dtf_done: Optional[datetime] = None


class CuttingStart(BaseModel):
    assignee: Optional[str] = None
    cutting_mesin: Optional[str] = None
    cutting_speed: Optional[str] = None
    acc: Optional[str] = None
    power: Optional[str] = None
    notes: Optional[str] = None
    tgl_cutting: Optional[datetime] = None


class CuttingComplete(BaseModel):
    cutting_bagus: Optional[str] = None
    cutting_reject: Optional[str] = None
    notes: Optional[str] = None
    complete: bool = False
    cutting_done: Optional[datetime] = None
