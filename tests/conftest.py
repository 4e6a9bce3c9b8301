"""Shared fixtures: a small synthetic bundle with one site per common patch."""

import pytest

from bundle_patcher import cli_display


SAMPLE_BUNDLE = (
    'var Ck=Xt();var Wz=1,Sv=["Actualizing","Baking","Clauding"];'
    'function Kq(A){if(A.includes("[1m]"))return 1e6;return 200000}'
    'var Gs=["·","✢","✳","✶","✻","✽"],Ms=[...Gs,...[...Gs].reverse()];'
    'function Sp(){Yq(()=>{if(!F){Z(4);return}Z((B)=>B+1)},120);'
    'return R.createElement(Bx,{flexWrap:"wrap",height:1,width:2},Ck.cyan(Ms[0]))}'
    'function Th(){return R.createElement(Sq,{mode:A,spinnerTip:B,overrideMessage:C,verbose:D})}'
    'function Sel({options:A,visibleOptionCount:B=5}){return A}'
    'function Cost(){if(Mx())return"You are on a Max subscription, no need to monitor cost";return Ck.gray("$")}'
    'function Ml(){let Lm=Dm();if(x)Lm.push({value:C,label:C,description:"Custom model"});return Lm}'
)


@pytest.fixture
def sample_bundle():
    return SAMPLE_BUNDLE


@pytest.fixture(autouse=True)
def _reset_debug():
    yield
    cli_display._debug_enabled = False
